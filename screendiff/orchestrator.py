"""Pipeline orchestrator — coordinates build, schedule, capture, diff, and report stages."""

from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from pathlib import Path

from screendiff.builder.task_builder import TaskBuilder
from screendiff.differ.image_processor import crop_image
from screendiff.differ.pairer import DiffPairer
from screendiff.errors import DiffPreconditionError
from screendiff.executor.executor import Executor
from screendiff.models.config import ScreendiffConfig
from screendiff.models.result import RunSummary
from screendiff.models.task import CaptureSpec, CaptureTask
from screendiff.reporter.reporter import Reporter
from screendiff.scheduler import batchify

logger = logging.getLogger(__name__)


def run_dir_name(command_value: str) -> str:
    """Filesystem-safe directory name for a command value (``/about`` -> ``_about``)."""
    return re.sub(r"[^\w.-]+", "_", command_value).strip(".") or "_"


class Orchestrator:
    """Coordinates a full capture run for one CaptureSpec."""

    def __init__(
        self,
        config: ScreendiffConfig,
        builder: TaskBuilder | None = None,
        executor: Executor | None = None,
    ):
        self.config = config
        self.builder = builder or TaskBuilder(config)
        self.executor = executor or Executor(config)
        self.reports: dict[str, str] = {}

    def run(self, spec: CaptureSpec) -> RunSummary:
        """Execute the complete build → capture → diff → report pipeline."""
        return asyncio.run(self._run_pipeline(spec))

    async def _run_pipeline(self, spec: CaptureSpec) -> RunSummary:
        start = time.time()
        diff_mode = spec.diff or bool(spec.extension_path)
        summary = RunSummary(
            run_id=f"run_{uuid.uuid4().hex[:8]}",
            command=spec.command,
            command_value=spec.command_value,
            started_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            diff_mode=diff_mode,
        )
        logger.info("=== Starting %s run for %s ===", spec.command, spec.command_value)

        # Stage 1: Build
        logger.info("--- Stage 1: Build ---")
        tasks = await self.builder.build(spec)
        logger.info("--- Stage 1 complete: %d tasks ---", len(tasks))

        screenshot_dir = Path(self.config.screenshot_dir) / run_dir_name(spec.command_value)
        output_dir = Path(self.config.output_dir) / run_dir_name(spec.command_value)
        screenshot_dir.mkdir(parents=True, exist_ok=True)
        output_dir.mkdir(parents=True, exist_ok=True)
        self._assign_paths(tasks, screenshot_dir)

        # Stage 2: Schedule
        logger.info("--- Stage 2: Schedule ---")
        batches = batchify(tasks, self.config.max_parallel_tasks)
        summary.total_tasks = len(tasks)
        summary.total_batches = len(batches)

        # Stage 3: Capture
        logger.info("--- Stage 3: Capture (%d tasks) ---", len(tasks))
        stage_start = time.time()
        tasks = await self.executor.execute(batches)
        logger.info("--- Stage 3 complete in %.1fs ---", time.time() - stage_start)

        # Stage 4: Crop
        logger.info("--- Stage 4: Crop ---")
        await self._crop(tasks)

        # Stage 5: Diff
        if diff_mode:
            logger.info("--- Stage 5: Diff ---")
            pairer = DiffPairer(output_dir, tolerance=self.config.diff_tolerance)
            try:
                summary.diffs = await pairer.run(tasks)
            except DiffPreconditionError as e:
                logger.error("%s", e)
                summary.diff_error = str(e)

        summary.tasks = tasks
        summary.captured = sum(1 for t in tasks if t.captured)
        summary.errors = len(tasks) - summary.captured
        summary.completed_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        summary.duration_seconds = round(time.time() - start, 2)

        # Stage 6: Report
        logger.info("--- Stage 6: Report ---")
        self.reports = Reporter(self.config).generate_reports(summary, output_dir)

        logger.info("=== Run complete in %.1fs ===", summary.duration_seconds)
        return summary

    @staticmethod
    def _assign_paths(tasks: list[CaptureTask], screenshot_dir: Path) -> None:
        for i, task in enumerate(tasks):
            task.index = i
            task.image_path = str(screenshot_dir / f"{i}.png")

    async def _crop(self, tasks: list[CaptureTask]) -> None:
        for task in tasks:
            if not task.captured:
                continue
            try:
                await asyncio.to_thread(crop_image, task.image_path, task.size)
            except OSError as e:
                logger.warning("Couldn't crop %s: %s", task.image_path, e)
