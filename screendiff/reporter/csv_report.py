"""CSV summary — one line per diffed pair."""

from __future__ import annotations

import csv
import os
from pathlib import Path

from screendiff.differ.pairer import diff_image_name
from screendiff.models.result import RunSummary


def _link(base_url: str, path: str, base_dir: Path) -> str:
    rel = Path(os.path.relpath(path, base_dir)).as_posix()
    if not base_url:
        return rel
    return base_url.rstrip("/") + "/" + rel


def generate_csv_report(summary: RunSummary, output_path: Path, base_url: str = "") -> None:
    """Write ``value, url_before, url_after, diff, img_before, img_after`` rows.

    ``value`` is the diff metric, or the error that prevented the diff.
    """
    tasks = sorted(summary.tasks, key=lambda t: t.index)
    base_dir = Path(output_path).parent
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        for i in range(0, len(tasks) - 1, 2):
            before, after = tasks[i], tasks[i + 1]
            if before.diff_error:
                value = before.diff_error
            elif before.diff_metric is not None:
                value = f"{before.diff_metric:.6f}"
            else:
                value = ""
            diff_path = before.diff_image_path or str(base_dir / diff_image_name(before.index, after.index))
            writer.writerow([
                value,
                before.url,
                after.url,
                _link(base_url, diff_path, base_dir),
                _link(base_url, before.image_path, base_dir),
                _link(base_url, after.image_path, base_dir),
            ])
