"""Capture specification and task data structures."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

Command = Literal["search", "path", "url", "ia", "group"]


class Size(BaseModel):
    name: str
    width: int
    height: int


class Point(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: Union[StrictInt, StrictFloat]
    y: Union[StrictInt, StrictFloat]


class Action(BaseModel):
    """A single pre-capture step.

    ``target`` is either a CSS selector or an ``{x, y}`` viewport coordinate.
    Unknown action names and malformed targets fail validation.
    """

    model_config = ConfigDict(extra="forbid")

    action: Literal["click", "mouseDown", "mouseUp", "mouseMove"]
    target: Union[str, Point]


class CaptureSpec(BaseModel):
    """Everything needed to expand one command into capture tasks."""

    command: Command
    command_value: str
    query: Optional[str] = None  # ia only
    hosts: list[str] = Field(default_factory=list)
    browsers: list[str] = Field(default_factory=lambda: ["headless-chromium"])
    sizes: list[str] = Field(default_factory=lambda: ["m"])
    landscape: bool = False
    action: Optional[str] = None
    qs: Optional[str] = None
    diff: bool = False
    extension_path: Optional[str] = None


class GroupItem(BaseModel):
    """One entry of a group file or group-building script output."""

    model_config = ConfigDict(populate_by_name=True)

    command: Command
    command_value: str = Field(alias="commandValue")
    query: Optional[str] = None
    browsers: list[str] = Field(default_factory=list)
    sizes: list[str] = Field(default_factory=list)
    action: Optional[str] = None
    qs: Optional[str] = None


class CaptureTask(BaseModel):
    """Unit of work producing one screenshot.

    Built once by the task builder; ``index``/``image_path`` are assigned by
    the orchestrator, ``batch_id`` by the scheduler. The outcome fields at the
    bottom are only written after execution.
    """

    url: str
    browser: str
    size: Optional[Size] = None  # desktop only
    landscape: Optional[bool] = None  # mobile only
    actions: list[Action] = Field(default_factory=list)
    extension_path: Optional[str] = None
    last_for_browser: bool = False

    index: int = -1
    batch_id: Optional[int] = None
    image_path: str = ""

    # Outcome
    error: Optional[str] = None
    diff_metric: Optional[float] = None
    diff_equal: Optional[bool] = None
    diff_image_path: Optional[str] = None
    diff_error: Optional[str] = None  # capture error of either task in the pair

    @property
    def captured(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        if self.size:
            return f"{self.url} on {self.browser} at {self.size.width}x{self.size.height} ({self.size.name})"
        orientation = "landscape" if self.landscape else "portrait"
        return f"{self.url} on {self.browser} ({orientation})"
