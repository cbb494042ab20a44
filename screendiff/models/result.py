"""Run output data structures consumed by the reporter."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .task import CaptureTask


class DiffResult(BaseModel):
    before_index: int
    after_index: int
    metric: Optional[float] = None
    equal: Optional[bool] = None
    diff_image_path: Optional[str] = None
    error: Optional[str] = None  # copied from a failed capture, or a compare failure


class RunSummary(BaseModel):
    run_id: str
    command: str
    command_value: str
    started_at: str
    completed_at: str = ""
    duration_seconds: float = 0.0
    diff_mode: bool = False
    total_tasks: int = 0
    total_batches: int = 0
    captured: int = 0
    errors: int = 0
    diff_error: Optional[str] = None
    tasks: list[CaptureTask] = Field(default_factory=list)
    diffs: list[DiffResult] = Field(default_factory=list)
