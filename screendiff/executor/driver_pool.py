"""Driver pool — per-batch cache of browser sessions keyed by browser name."""

from __future__ import annotations

import logging

from playwright.async_api import Playwright

from screendiff.models.config import ScreendiffConfig
from screendiff.models.task import CaptureTask

from .backends import DriverSession, open_session, resolve_backend

logger = logging.getLogger(__name__)


class DriverPool:
    """Caches sessions for one batch worker.

    Sessions are reused across tasks of the same browser, and replaced once
    they've been used ``max_session_uses`` times. A pool is never shared
    between batches.
    """

    def __init__(self, playwright: Playwright, batch_id: int, config: ScreendiffConfig):
        self.playwright = playwright
        self.batch_id = batch_id
        self.config = config
        self.max_uses = config.max_session_uses
        self._sessions: dict[str, DriverSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, browser: str) -> DriverSession | None:
        return self._sessions.get(browser)

    async def acquire(self, task: CaptureTask) -> DriverSession:
        """Return a usable session for the task's browser, starting one if needed."""
        browser = task.browser
        session = self._sessions.get(browser)

        if session is not None and session.uses >= self.max_uses:
            logger.debug("Batch %d: %s session used %d times, replacing it",
                         self.batch_id, browser, session.uses)
            await self.retire(browser)
            session = None

        if session is None:
            target = resolve_backend(
                browser, self.config,
                landscape=bool(task.landscape),
                extension_path=task.extension_path,
            )
            session = await open_session(
                self.playwright, target, browser, self.batch_id, task,
                navigation_timeout_ms=self.config.page_load_timeout_seconds * 1000,
            )
            self._sessions[browser] = session

        session.uses += 1
        return session

    async def retire(self, browser: str) -> None:
        session = self._sessions.pop(browser, None)
        if session is not None:
            logger.debug("Batch %d: closing %s session", self.batch_id, browser)
            await session.close()

    async def retire_all(self) -> None:
        """Close every session cached for this batch."""
        for browser in list(self._sessions):
            await self.retire(browser)
