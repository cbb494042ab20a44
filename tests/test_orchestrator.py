"""Tests for the pipeline orchestrator."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from screendiff.errors import BuildError, SessionError
from screendiff.models.task import CaptureSpec
from screendiff.orchestrator import Orchestrator, run_dir_name


def _fake_execute(colors):
    """An executor stand-in that 'captures' solid images, or fails tasks given None."""

    async def execute(batches):
        tasks = sorted((t for b in batches for t in b), key=lambda t: t.index)
        for task, color in zip(tasks, colors):
            if color is None:
                task.error = "Timed out"
            else:
                Image.new("RGB", (1200, 900), color).save(task.image_path)
        return tasks

    executor = Mock()
    executor.execute = AsyncMock(side_effect=execute)
    return executor


@pytest.fixture
def builder(task_factory):
    builder = Mock()
    builder.build = AsyncMock(return_value=[
        task_factory(-1, url="https://andrey.duckduckgo.com/?q=cats", image_path=""),
        task_factory(-1, url="https://duckduckgo.com/?q=cats", image_path="", last_for_browser=True),
    ])
    return builder


def test_run_dir_name():
    assert run_dir_name("/about") == "_about"
    assert run_dir_name("cats & dogs") == "cats_dogs"
    assert run_dir_name("https://example.com/a?b=c") == "https_example.com_a_b_c"


class TestOrchestrator:
    """Tests for Orchestrator.run."""

    def test_diff_run(self, config, builder):
        executor = _fake_execute(["white", "white"])
        spec = CaptureSpec(command="search", command_value="cats", hosts=["prod"], diff=True)

        summary = Orchestrator(config, builder=builder, executor=executor).run(spec)

        run_dir = Path(config.screenshot_dir) / "cats"
        assert [t.index for t in summary.tasks] == [0, 1]
        assert summary.tasks[0].image_path == str(run_dir / "0.png")
        assert summary.total_tasks == 2
        assert summary.captured == 2
        assert summary.diffs[0].equal is True
        assert (run_dir / "0and1diff.png").exists()
        assert (run_dir / "index.html").exists()
        assert (run_dir / "summary.csv").exists()
        assert (run_dir / "summary.json").exists()

    def test_screenshots_cropped(self, config, builder):
        executor = _fake_execute(["white", "white"])
        spec = CaptureSpec(command="search", command_value="cats")

        summary = Orchestrator(config, builder=builder, executor=executor).run(spec)

        with Image.open(summary.tasks[0].image_path) as img:
            assert img.size == (860, 483)

    def test_failed_capture_kept_in_report(self, config, builder):
        executor = _fake_execute(["white", None])
        spec = CaptureSpec(command="search", command_value="cats", diff=True)

        summary = Orchestrator(config, builder=builder, executor=executor).run(spec)

        assert summary.errors == 1
        assert summary.diffs[0].error == "Timed out"
        assert summary.diffs[0].equal is None

    def test_odd_count_still_reports(self, config, builder, task_factory):
        builder.build.return_value = builder.build.return_value[:1]
        executor = _fake_execute(["white"])
        spec = CaptureSpec(command="url", command_value="https://example.com", extension_path="/ext")

        summary = Orchestrator(config, builder=builder, executor=executor).run(spec)

        assert "uneven" in summary.diff_error
        assert summary.diffs == []
        orchestrator_dir = Path(config.output_dir) / run_dir_name("https://example.com")
        assert (orchestrator_dir / "index.html").exists()

    def test_no_diff_without_diff_mode(self, config, builder):
        executor = _fake_execute(["white", "black"])
        spec = CaptureSpec(command="search", command_value="cats")

        summary = Orchestrator(config, builder=builder, executor=executor).run(spec)

        assert summary.diff_mode is False
        assert summary.diffs == []
        assert not (Path(config.screenshot_dir) / "cats" / "0and1diff.png").exists()

    def test_build_error_propagates(self, config, builder):
        builder.build.side_effect = BuildError("Invalid size: huge")
        executor = _fake_execute([])

        with pytest.raises(BuildError):
            Orchestrator(config, builder=builder, executor=executor).run(
                CaptureSpec(command="search", command_value="cats"),
            )
        executor.execute.assert_not_called()

    def test_session_error_aborts_run(self, config, builder):
        executor = Mock()
        executor.execute = AsyncMock(side_effect=SessionError("chrome", "invalid credentials"))

        with pytest.raises(SessionError):
            Orchestrator(config, builder=builder, executor=executor).run(
                CaptureSpec(command="search", command_value="cats"),
            )

    def test_batches_respect_max_parallel(self, config, task_factory):
        builder = Mock()
        builder.build = AsyncMock(return_value=[task_factory(-1, image_path="") for _ in range(6)])
        executor = _fake_execute(["white"] * 6)
        config = config.model_copy(update={"max_parallel_tasks": 3})

        summary = Orchestrator(config, builder=builder, executor=executor).run(
            CaptureSpec(command="search", command_value="cats"),
        )

        assert summary.total_batches == 3
        batches = executor.execute.call_args.args[0]
        assert [len(b) for b in batches] == [2, 2, 2]
