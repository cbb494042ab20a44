"""Batch executor — runs batches concurrently, tasks within a batch in order."""

from __future__ import annotations

import asyncio
import logging
import time

from playwright.async_api import Playwright, async_playwright

from screendiff.models.config import ScreendiffConfig
from screendiff.models.task import CaptureTask

from .capture import CaptureExecutor, CaptureState
from .driver_pool import DriverPool

logger = logging.getLogger(__name__)


class Executor:
    """Takes a screenshot for every task, one worker per batch."""

    def __init__(self, config: ScreendiffConfig):
        self.config = config

    async def execute(self, batches: list[list[CaptureTask]]) -> list[CaptureTask]:
        """Run all batches and return every task in original index order.

        If any batch fails fatally (a session can't be started) the sibling
        batches are cancelled and the error propagates.
        """
        start = time.time()
        total = sum(len(b) for b in batches)
        if total == 0:
            logger.warning("nothing to capture")
            return []
        logger.info("taking %d screenshot%s in %d batch%s",
                    total, "s" if total != 1 else "",
                    len(batches), "es" if len(batches) != 1 else "")

        async with async_playwright() as p:
            workers = [
                asyncio.create_task(self._run_batch(p, batch_id, batch))
                for batch_id, batch in enumerate(batches)
            ]
            try:
                await asyncio.gather(*workers)
            except BaseException:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                raise

        tasks = sorted((t for batch in batches for t in batch), key=lambda t: t.index)
        failed = sum(1 for t in tasks if t.error)
        logger.info("Execution complete: %d captured, %d failed (%.1fs)",
                    len(tasks) - failed, failed, time.time() - start)
        return tasks

    async def _run_batch(self, playwright: Playwright, batch_id: int, batch: list[CaptureTask]) -> None:
        pool = DriverPool(playwright, batch_id, self.config)
        capture = CaptureExecutor(self.config)
        logger.debug("Batch %d: %d tasks", batch_id, len(batch))
        try:
            for task in batch:
                session = await pool.acquire(task)
                state = await capture.run(task, session)
                logger.info("[%s] task %d: %s", state.value.upper(), task.index, task.url)
                if state is CaptureState.SESSION_LOST:
                    await pool.retire(task.browser)
                if task.last_for_browser:
                    # no later task needs this browser
                    await pool.retire_all()
        finally:
            await pool.retire_all()
        logger.debug("Batch %d finished", batch_id)
