"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from screendiff.models.result import RunSummary


def generate_json_report(summary: RunSummary, output_path: Path) -> None:
    """Write a machine-readable JSON summary."""
    with open(output_path, "w") as f:
        json.dump(summary.model_dump(), f, indent=2, default=str)
