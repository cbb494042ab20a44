"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from screendiff.models.config import ScreendiffConfig
from screendiff.models.result import RunSummary

from .csv_report import generate_csv_report
from .html_report import generate_html_report
from .json_report import generate_json_report

logger = logging.getLogger(__name__)


class Reporter:
    """Writes the results page and summaries next to the screenshots."""

    def __init__(self, config: ScreendiffConfig):
        self.config = config

    def generate_reports(self, summary: RunSummary, output_dir: Path) -> dict[str, str]:
        """Generate all report formats. Returns format -> file path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        generated = {}

        path = output_dir / "index.html"
        generate_html_report(summary, path)
        generated["html"] = str(path)
        logger.info("HTML report: %s", path)

        if summary.diff_mode and not summary.diff_error:
            path = output_dir / "summary.csv"
            generate_csv_report(summary, path, base_url=self.config.report_base_url)
            generated["csv"] = str(path)
            logger.info("CSV summary: %s", path)

        path = output_dir / "summary.json"
        generate_json_report(summary, path)
        generated["json"] = str(path)
        logger.info("JSON summary: %s", path)

        return generated
