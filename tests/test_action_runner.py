"""Tests for the pre-capture action runner."""

from unittest.mock import call

import pytest
from pydantic import ValidationError

from screendiff.executor.action_runner import run_action, run_actions
from screendiff.models.task import Action, Point


@pytest.mark.asyncio
class TestRunAction:
    """Tests for run_action."""

    async def test_click_selector(self, mock_page):
        await run_action(mock_page, Action(action="click", target="button#submit"))

        mock_page.click.assert_called_once_with("button#submit", timeout=10000)

    async def test_click_point(self, mock_page):
        await run_action(mock_page, Action(action="click", target={"x": 10, "y": 20}))

        mock_page.mouse.click.assert_called_once_with(10, 20)
        mock_page.click.assert_not_called()

    async def test_mouse_move_selector_hovers(self, mock_page):
        await run_action(mock_page, Action(action="mouseMove", target=".tile"))

        mock_page.hover.assert_called_once_with(".tile", timeout=10000)

    async def test_mouse_move_point(self, mock_page):
        await run_action(mock_page, Action(action="mouseMove", target=Point(x=5, y=6)))

        mock_page.mouse.move.assert_called_once_with(5, 6)

    async def test_mouse_down_moves_first(self, mock_page):
        await run_action(mock_page, Action(action="mouseDown", target={"x": 1, "y": 2}))

        assert mock_page.mouse.mock_calls[:2] == [call.move(1, 2), call.down()]

    async def test_mouse_up_on_selector(self, mock_page):
        await run_action(mock_page, Action(action="mouseUp", target="#drop"), timeout=500)

        mock_page.hover.assert_called_once_with("#drop", timeout=500)
        mock_page.mouse.up.assert_called_once()

    async def test_run_actions_in_order(self, mock_page):
        await run_actions(mock_page, [
            Action(action="mouseMove", target=".a"),
            Action(action="click", target=".b"),
        ])

        mock_page.hover.assert_called_once_with(".a", timeout=10000)
        mock_page.click.assert_called_once_with(".b", timeout=10000)


class TestActionValidation:
    """Unknown actions and targets are rejected when parsed."""

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            Action(action="doubleClick", target=".a")

    def test_malformed_point(self):
        with pytest.raises(ValidationError):
            Action(action="click", target={"x": 1})

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            Action(action="click", target=".a", delay=100)
