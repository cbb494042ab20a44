"""Diff pairer — pairs before/after screenshots and compares them."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from screendiff.errors import DiffPreconditionError
from screendiff.models.result import DiffResult
from screendiff.models.task import CaptureTask

from .image_processor import compare_images

logger = logging.getLogger(__name__)


def diff_image_name(before_index: int, after_index: int) -> str:
    return f"{before_index}and{after_index}diff.png"


class DiffPairer:
    """Pairs tasks ``[2i]`` (before) with ``[2i+1]`` (after) and diffs them."""

    def __init__(self, output_dir: str | Path, tolerance: float = 0.1):
        self.output_dir = Path(output_dir)
        self.tolerance = tolerance

    async def run(self, tasks: list[CaptureTask]) -> list[DiffResult]:
        ordered = sorted(tasks, key=lambda t: t.index)
        if len(ordered) % 2 != 0:
            raise DiffPreconditionError(
                f"can't generate diffs with an uneven number of screenshots ({len(ordered)})"
            )

        pairs = [(ordered[i], ordered[i + 1]) for i in range(0, len(ordered), 2)]
        logger.info("Generating %d diffs", len(pairs))
        return list(await asyncio.gather(*(self._diff_pair(b, a) for b, a in pairs)))

    async def _diff_pair(self, before: CaptureTask, after: CaptureTask) -> DiffResult:
        result = DiffResult(before_index=before.index, after_index=after.index)

        error = before.error or after.error
        if error:
            result.error = error
            before.diff_error = after.diff_error = error
            return result

        diff_path = self.output_dir / diff_image_name(before.index, after.index)
        logger.debug("creating diff at: %s", diff_path)
        try:
            equal, metric = await asyncio.to_thread(
                compare_images, before.image_path, after.image_path, diff_path, self.tolerance,
            )
        except (OSError, ValueError) as e:
            logger.warning("Diff failed for %d and %d: %s", before.index, after.index, e)
            result.error = f"Diff failed: {e}"
            before.diff_error = after.diff_error = result.error
            return result

        logger.info("%s vs %s: equal=%s (%.4f)", before.url, after.url, equal, metric)
        result.metric = metric
        result.equal = equal
        result.diff_image_path = str(diff_path)
        for task in (before, after):
            task.diff_metric = metric
            task.diff_equal = equal
            task.diff_image_path = str(diff_path)
        return result
