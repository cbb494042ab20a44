"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Page

from screendiff.models.config import ScreendiffConfig
from screendiff.models.result import RunSummary
from screendiff.models.task import CaptureSpec, CaptureTask, Size


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config(tmp_path: Path) -> ScreendiffConfig:
    """Create a test config with every directory under tmp_path."""
    return ScreendiffConfig(
        screenshot_dir=str(tmp_path / "screenshots"),
        output_dir=str(tmp_path / "screenshots"),
        group_dir=str(tmp_path / "groups"),
        group_builder_dir=str(tmp_path / "group_builders"),
        action_dir=str(tmp_path / "actions"),
        retry_backoff_seconds=0,
        remote_username="user",
        remote_access_key="key",
    )


@pytest.fixture
def temp_config_file(config: ScreendiffConfig, tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_file = tmp_path / "test-config.json"
    config.save(config_file)
    return config_file


# ============================================================================
# Task Fixtures
# ============================================================================


def make_task(index: int = 0, browser: str = "headless-chromium", **kwargs: Any) -> CaptureTask:
    """Build a CaptureTask with sensible defaults."""
    defaults: dict[str, Any] = {
        "url": f"https://example.duckduckgo.com/?q=test{index}",
        "browser": browser,
        "size": Size(name="m", width=860, height=483),
        "index": index,
        "image_path": f"/tmp/{index}.png",
    }
    defaults.update(kwargs)
    return CaptureTask(**defaults)


@pytest.fixture
def task_factory():
    """Fixture that provides the make_task helper."""
    return make_task


@pytest.fixture
def search_spec() -> CaptureSpec:
    return CaptureSpec(command="search", command_value="cats", hosts=["prod"])


@pytest.fixture
def run_summary() -> RunSummary:
    """A finished diff run with one compared pair and one failed pair."""
    tasks = [
        make_task(0, url="https://andrey.duckduckgo.com/?q=cats", diff_metric=0.02,
                  diff_equal=True, diff_image_path="/tmp/0and1diff.png"),
        make_task(1, url="https://duckduckgo.com/?q=cats", diff_metric=0.02,
                  diff_equal=True, diff_image_path="/tmp/0and1diff.png"),
        make_task(2, url="https://andrey.duckduckgo.com/?q=dogs", error="Timed out",
                  diff_error="Timed out"),
        make_task(3, url="https://duckduckgo.com/?q=dogs", diff_error="Timed out"),
    ]
    return RunSummary(
        run_id="run-001",
        command="search",
        command_value="cats",
        started_at="2025-01-01T00:00:00Z",
        completed_at="2025-01-01T00:01:00Z",
        duration_seconds=60.0,
        diff_mode=True,
        total_tasks=4,
        total_batches=2,
        captured=3,
        errors=1,
        tasks=tasks,
    )


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.goto = AsyncMock(return_value=Mock(status=200))
    page.wait_for_function = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"\x89PNG" + b"\x00" * 10000)
    page.set_viewport_size = AsyncMock()
    page.set_default_navigation_timeout = Mock()
    page.click = AsyncMock()
    page.hover = AsyncMock()
    page.mouse = AsyncMock()
    page.on = Mock()
    return page


@pytest.fixture
def mock_session(mock_page: AsyncMock) -> MagicMock:
    """Create a mock DriverSession wrapping mock_page."""
    session = MagicMock()
    session.page = mock_page
    session.uses = 0
    session.close = AsyncMock()
    return session


# ============================================================================
# Image Helpers
# ============================================================================


def create_image(path: Path, size: tuple[int, int] = (40, 30), color=(255, 255, 255)) -> Path:
    """Write a solid-colour PNG."""
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture
def create_image_helper():
    """Fixture that provides the create_image function."""
    return create_image
