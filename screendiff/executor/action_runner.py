"""Action runner — replays pre-capture actions against a Playwright page."""

from __future__ import annotations

import json
import logging

from playwright.async_api import Page

from screendiff.models.task import Action, Point

logger = logging.getLogger(__name__)


async def _move_to(page: Page, target: str | Point, timeout: int) -> None:
    if isinstance(target, Point):
        await page.mouse.move(target.x, target.y)
    else:
        await page.hover(target, timeout=timeout)


async def run_action(page: Page, action: Action, timeout: int = 10000) -> None:
    """Execute a single action.

    ``target`` is a CSS selector or an ``{x, y}`` point in the viewport.
    """
    target = action.target
    logger.info("running action: %s", json.dumps(action.model_dump()))

    match action.action:
        case "click":
            if isinstance(target, Point):
                await page.mouse.click(target.x, target.y)
            else:
                await page.click(target, timeout=timeout)

        case "mouseMove":
            await _move_to(page, target, timeout)

        case "mouseDown":
            await _move_to(page, target, timeout)
            await page.mouse.down()

        case "mouseUp":
            await _move_to(page, target, timeout)
            await page.mouse.up()

        case _:
            raise ValueError(f"unsupported action: {action.action}")


async def run_actions(page: Page, actions: list[Action], timeout: int = 10000) -> None:
    for action in actions:
        await run_action(page, action, timeout=timeout)
