"""Task scheduler — splits tasks into batches that can run in parallel."""

from __future__ import annotations

import logging
import math

from screendiff.models.task import CaptureTask

logger = logging.getLogger(__name__)

MIN_TASKS_PER_BATCH = 2


def split_into_batches(tasks: list[CaptureTask], max_batches: int) -> list[list[CaptureTask]]:
    """Split tasks evenly across at most ``max_batches`` batches, keeping order.

    Each batch gets at least MIN_TASKS_PER_BATCH tasks when there are that
    many.
    """
    if not tasks:
        return []
    per_batch = max(MIN_TASKS_PER_BATCH, math.ceil(len(tasks) / max(1, max_batches)))
    return [tasks[i:i + per_batch] for i in range(0, len(tasks), per_batch)]


def group_by_browser(tasks: list[CaptureTask]) -> dict[str, list[CaptureTask]]:
    grouped: dict[str, list[CaptureTask]] = {}
    for task in tasks:
        grouped.setdefault(task.browser, []).append(task)
    return grouped


def batchify(tasks: list[CaptureTask], max_parallel_tasks: int) -> list[list[CaptureTask]]:
    """Split tasks into batches that can run simultaneously.

    With more than one browser, and no more browsers than parallel slots,
    each batch holds a single browser so its session can be reused. Otherwise
    the whole list is split evenly. Sets ``batch_id`` on every task.
    """
    max_parallel_tasks = max(1, max_parallel_tasks)
    by_browser = group_by_browser(tasks)

    if 1 < len(by_browser) <= max_parallel_tasks:
        batches_per_browser = max_parallel_tasks // len(by_browser)
        batches = []
        for browser_tasks in by_browser.values():
            batches.extend(split_into_batches(browser_tasks, batches_per_browser))
    else:
        batches = split_into_batches(tasks, max_parallel_tasks)

    for batch_id, batch in enumerate(batches):
        for task in batch:
            task.batch_id = batch_id

    logger.debug("Split %d tasks across %d browsers into %d batches (max %d)",
                 len(tasks), len(by_browser), len(batches), max_parallel_tasks)
    return batches
