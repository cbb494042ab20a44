"""Capture executor — runs a single task: load, act, screenshot, check."""

from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from screendiff.errors import CaptureQualityError, NavigationTransientError
from screendiff.models.config import ScreendiffConfig
from screendiff.models.task import CaptureTask

from .action_runner import run_actions
from .backends import DriverSession

logger = logging.getLogger(__name__)

# On the search results page the results are rendered after the load event,
# so wait until there are a few of them as well.
READY_SCRIPT = """() => {
    const ddg = window.DDG;
    if (ddg && ddg.page && ddg.page.pageType === "serp") {
        return document.querySelectorAll("#links .result").length > 2 &&
            document.readyState === "complete";
    }
    return document.readyState === "complete";
}"""

TIMED_OUT = "Timed out"
ACTION_FAILED = "Pre-capture action failed"


class CaptureState(str, enum.Enum):
    LOADING = "loading"
    ACTION_RUN = "action_run"
    CAPTURED = "captured"
    FAILED = "failed"
    # the session itself broke; it should not be reused
    SESSION_LOST = "session_lost"


class CaptureExecutor:
    """Takes screenshots for tasks using an already-acquired session."""

    def __init__(self, config: ScreendiffConfig):
        self.config = config
        self.ready_timeout_ms = config.ready_timeout_seconds * 1000

    async def run(self, task: CaptureTask, session: DriverSession) -> CaptureState:
        """Run one task to completion, recording any error on the task.

        Only per-page problems are handled here. A browser error outside of
        a timeout or an action returns SESSION_LOST so the caller can replace
        the session before the next task.
        """
        page = session.page
        state = CaptureState.LOADING
        logger.info("worker %s started task %d for %s", task.batch_id, task.index, task.describe())

        try:
            if task.size:
                await page.set_viewport_size({"width": task.size.width, "height": task.size.height})

            loaded = await self.load(page, task.url)

            if task.actions:
                state = CaptureState.ACTION_RUN
                await run_actions(page, task.actions)
                # give a chance for anything the actions triggered to load
                await self.wait_until_ready(page)

            data = await page.screenshot(full_page=True)
            self.check_quality(data)
            await asyncio.to_thread(Path(task.image_path).write_bytes, data)
        except CaptureQualityError as e:
            logger.warning("Task %d: %s (%d bytes) for %s", task.index, e, e.size, task.url)
            task.error = str(e)
            return CaptureState.FAILED
        except PlaywrightError as e:
            task.error = ACTION_FAILED if state is CaptureState.ACTION_RUN else TIMED_OUT
            logger.warning("Task %d: error taking screenshot for %s: %s", task.index, task.url, e)
            if state is CaptureState.ACTION_RUN or isinstance(e, PlaywrightTimeoutError):
                return CaptureState.FAILED
            return CaptureState.SESSION_LOST

        logger.debug("Task %d captured to %s (loaded cleanly: %s)", task.index, task.image_path, loaded)
        return CaptureState.CAPTURED

    async def load(self, page: Page, url: str) -> bool:
        """Load ``url`` and wait for it to be ready, retrying on server errors.

        Returns False when the retry budget ran out; the caller takes the
        screenshot anyway.
        """
        tries_left = max(1, self.config.load_retries)
        while tries_left > 0:
            try:
                response = await page.goto(url)
                if response is not None and response.status >= 500:
                    raise NavigationTransientError(f"server responded with {response.status}")
                await page.wait_for_function(READY_SCRIPT, timeout=self.ready_timeout_ms)
                return True
            except PlaywrightTimeoutError:
                # even if we've timed out, we can probably still get a usable
                # screenshot from the page
                logger.warning("page possibly didn't load - taking a screenshot anyway (%s)", url)
                return True
            except (PlaywrightError, NavigationTransientError) as e:
                tries_left -= 1
                logger.warning("error loading %s (tries left: %d): %s", url, tries_left, e)
                if tries_left > 0:
                    await asyncio.sleep(self.config.retry_backoff_seconds)

        logger.warning("possible error on server - taking screenshot anyway (%s)", url)
        return False

    async def wait_until_ready(self, page: Page) -> None:
        try:
            await page.wait_for_function(READY_SCRIPT, timeout=self.ready_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("page not ready after actions, continuing")

    def check_quality(self, data: bytes) -> None:
        if len(data) < self.config.min_screenshot_bytes:
            raise CaptureQualityError(len(data))
