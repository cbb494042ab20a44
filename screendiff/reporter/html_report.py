"""HTML report generator — an index page next to the screenshots."""

from __future__ import annotations

import html
import logging
import os
from pathlib import Path

from screendiff.models.result import RunSummary
from screendiff.models.task import CaptureTask

logger = logging.getLogger(__name__)

# make sure the generated page doesn't cache
_HEAD = """<html>
<head>
<meta http-equiv='Cache-Control' content='no-cache, no-store, must-revalidate' />
<meta http-equiv='Pragma' content='no-cache' />
<meta http-equiv='Expires' content='0' />
<style>
  body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; }
  td { padding: 6px; vertical-align: top; }
  .header-row { background: lightgray; }
  .error { color: #b91c1c; font-weight: bold; }
  .equal { color: #15803d; }
  .different { color: #b91c1c; }
</style>
</head>
<body>
"""


def _task_label(task: CaptureTask) -> str:
    return html.escape(task.describe())


def _src(path: str, base_dir: Path) -> str:
    return html.escape(os.path.relpath(path, base_dir), quote=True)


def _image_cell(task: CaptureTask, base_dir: Path) -> str:
    if task.error:
        return f'<td class="error">{html.escape(task.error)}</td>'
    return f"<td><img src='{_src(task.image_path, base_dir)}'></td>"


def _metric_cell(before: CaptureTask) -> str:
    if before.diff_error:
        return f'<td class="error">{html.escape(before.diff_error)}</td>'
    if before.diff_metric is None:
        return "<td>-</td>"
    css = "equal" if before.diff_equal else "different"
    return f'<td class="{css}"><b>{before.diff_metric:.4f}</b></td>'


def _diff_rows(tasks: list[CaptureTask], base_dir: Path) -> str:
    rows = ""
    for i in range(0, len(tasks) - 1, 2):
        before, after = tasks[i], tasks[i + 1]
        diff_cell = "<td>-</td>"
        if before.diff_image_path:
            diff_cell = f"<td><img src='{_src(before.diff_image_path, base_dir)}'></td>"
        rows += f'''
<tr class="header-row">
  <td>Diff Value</td><td>diff image</td><td>{_task_label(before)}</td><td>{_task_label(after)}</td>
</tr>
<tr>
  {_metric_cell(before)}{diff_cell}{_image_cell(before, base_dir)}{_image_cell(after, base_dir)}
</tr>'''
    return rows


def _single_rows(tasks: list[CaptureTask], base_dir: Path) -> str:
    rows = ""
    for task in tasks:
        rows += f"""
<tr>{_image_cell(task, base_dir)}</tr>
<tr><td>{_task_label(task)}</td></tr>"""
    return rows


def generate_html_report(summary: RunSummary, output_path: Path) -> None:
    """Write the results page. Diff runs get one block per pair."""
    tasks = sorted(summary.tasks, key=lambda t: t.index)
    paired = summary.diff_mode and not summary.diff_error
    base_dir = Path(output_path).parent

    page = _HEAD
    if summary.diff_error:
        page += f'<p class="error">Diffs not generated: {html.escape(summary.diff_error)}</p>'
    page += "<table border='5'>"
    page += _diff_rows(tasks, base_dir) if paired else _single_rows(tasks, base_dir)
    page += "\n</table></body></html>\n"

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(page)
    logger.debug("Wrote HTML report with %d tasks to %s", len(tasks), output_path)
