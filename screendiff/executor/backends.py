"""Automation backends — picks and starts a Playwright browser per browser name.

Three kinds of backend exist:

- ``local``: headless Chromium on this machine.
- ``extension``: headed Chromium with an unpacked extension loaded, running
  inside its own Xvfb virtual display (extensions need a headed browser).
- ``remote``: a browser on a third-party farm, addressed by a websocket
  endpoint carrying a capability payload.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import tempfile
from typing import Any, Literal, Optional
from urllib.parse import quote

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Playwright
from pydantic import BaseModel, Field

from screendiff.data import browsers as browser_data
from screendiff.errors import SessionError
from screendiff.models.config import ScreendiffConfig
from screendiff.models.task import CaptureTask

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1000, "height": 700}


class BackendTarget(BaseModel):
    kind: Literal["local", "extension", "remote"]
    engine: str = "chromium"
    connection_target: Optional[str] = None
    capabilities: dict[str, Any] = Field(default_factory=dict)
    local_binary_path: Optional[str] = None


def resolve_backend(
    browser: str,
    config: ScreendiffConfig,
    landscape: bool = False,
    extension_path: str | None = None,
) -> BackendTarget:
    """Map a browser short name to where and how its session is started."""
    if browser == browser_data.LOCAL_BROWSER:
        return BackendTarget(
            kind="local",
            capabilities={"headless": True, "args": ["--disable-gpu"]},
            local_binary_path=config.chromium_path,
        )

    if browser == browser_data.EXTENSION_BROWSER:
        if not extension_path:
            raise SessionError(browser, "no extension path given")
        return BackendTarget(
            kind="extension",
            capabilities={
                "headless": False,
                "args": [
                    f"--disable-extensions-except={extension_path}",
                    f"--load-extension={extension_path}",
                ],
            },
            local_binary_path=config.chromium_path,
        )

    # copy over any browser-related settings to the capabilities
    # we pass to the third party service
    info = browser_data.get_browser_info(browser)
    engine = info.pop("engine", "chromium")
    capabilities: dict[str, Any] = {
        "browserstack.username": config.remote_username,
        "browserstack.accessKey": config.remote_access_key,
        **info,
    }
    if landscape:
        capabilities["deviceOrientation"] = "landscape"

    return BackendTarget(
        kind="remote",
        engine=engine,
        connection_target=f"{config.remote_endpoint}?caps={quote(json.dumps(capabilities))}",
        capabilities=capabilities,
    )


class VirtualDisplay:
    """An Xvfb server owned by a single session."""

    def __init__(self, width: int, height: int, depth: int = 24):
        self.width = width
        self.height = height
        self.depth = depth
        self.display: str | None = None
        self._proc: asyncio.subprocess.Process | None = None

    async def start(self, timeout: float = 10.0) -> str:
        # -displayfd makes Xvfb pick a free display and print its number
        self._proc = await asyncio.create_subprocess_exec(
            "Xvfb", "-displayfd", "1",
            "-screen", "0", f"{self.width}x{self.height}x{self.depth}",
            "-nolisten", "tcp",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            line = await asyncio.wait_for(self._proc.stdout.readline(), timeout=timeout)
        except asyncio.TimeoutError:
            await self.stop()
            raise OSError("Xvfb did not report a display number")
        if not line.strip():
            await self.stop()
            raise OSError("Xvfb exited before reporting a display number")
        self.display = f":{line.decode().strip()}"
        logger.debug("Started Xvfb on display %s (%dx%d)", self.display, self.width, self.height)
        return self.display

    async def stop(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None or proc.returncode is not None:
            return
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=5)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
        logger.debug("Stopped Xvfb on display %s", self.display)


class DriverSession:
    """A live browser page plus everything that must be torn down with it."""

    def __init__(
        self,
        browser: str,
        batch_id: int,
        page,
        context,
        browser_handle=None,
        display: VirtualDisplay | None = None,
        user_data_dir: str | None = None,
    ):
        self.browser = browser
        self.batch_id = batch_id
        self.page = page
        self.context = context
        self.browser_handle = browser_handle
        self.display = display
        self.user_data_dir = user_data_dir
        self.uses = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Release the browser and its companion resources. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.context.close()
            if self.browser_handle is not None:
                await self.browser_handle.close()
        except PlaywrightError as e:
            logger.warning("Error closing %s session for batch %d: %s", self.browser, self.batch_id, e)
        finally:
            if self.display is not None:
                await self.display.stop()
            if self.user_data_dir:
                shutil.rmtree(self.user_data_dir, ignore_errors=True)


async def open_session(
    playwright: Playwright,
    target: BackendTarget,
    browser: str,
    batch_id: int,
    task: CaptureTask,
    navigation_timeout_ms: float,
) -> DriverSession:
    """Start a session for ``target``. Any failure is a SessionError."""
    viewport = {"width": task.size.width, "height": task.size.height} if task.size else DEFAULT_VIEWPORT
    logger.info("Batch %d: starting %s session for %s", batch_id, target.kind, browser)
    try:
        match target.kind:
            case "local":
                session = await _open_local(playwright, target, browser, batch_id, viewport)
            case "extension":
                session = await _open_extension(playwright, target, browser, batch_id, viewport)
            case "remote":
                session = await _open_remote(playwright, target, browser, batch_id)
            case _:
                raise SessionError(browser, f"unknown backend kind: {target.kind}")
    except (PlaywrightError, OSError) as e:
        raise SessionError(browser, str(e)) from e

    session.page.set_default_navigation_timeout(navigation_timeout_ms)
    return session


async def _open_local(playwright, target, browser, batch_id, viewport) -> DriverSession:
    handle = await playwright.chromium.launch(
        headless=target.capabilities.get("headless", True),
        executable_path=target.local_binary_path,
        args=target.capabilities.get("args", []),
    )
    try:
        context = await handle.new_context(viewport=viewport)
        page = await context.new_page()
    except PlaywrightError:
        await handle.close()
        raise
    return DriverSession(browser, batch_id, page, context, browser_handle=handle)


async def _open_extension(playwright, target, browser, batch_id, viewport) -> DriverSession:
    display = VirtualDisplay(viewport["width"], viewport["height"])
    await display.start()
    user_data_dir = tempfile.mkdtemp(prefix="screendiff-ext-")
    try:
        context = await playwright.chromium.launch_persistent_context(
            user_data_dir,
            headless=False,
            executable_path=target.local_binary_path,
            args=target.capabilities.get("args", []),
            viewport=viewport,
            env={**os.environ, "DISPLAY": display.display},
        )
        page = context.pages[0] if context.pages else await context.new_page()
    except (PlaywrightError, OSError):
        await display.stop()
        shutil.rmtree(user_data_dir, ignore_errors=True)
        raise
    return DriverSession(
        browser, batch_id, page, context, display=display, user_data_dir=user_data_dir,
    )


async def _open_remote(playwright, target, browser, batch_id) -> DriverSession:
    caps = target.capabilities
    if not caps.get("browserstack.username") or not caps.get("browserstack.accessKey"):
        raise SessionError(browser, "remote credentials are not configured")
    browser_type = getattr(playwright, target.engine)
    handle = await browser_type.connect(target.connection_target)
    try:
        context = await handle.new_context()
        page = await context.new_page()
    except PlaywrightError:
        await handle.close()
        raise
    return DriverSession(browser, batch_id, page, context, browser_handle=handle)
