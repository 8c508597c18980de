"""HTML report rendering for ApiVeritas comparison runs."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from html import escape
from pathlib import Path
from typing import Any, Optional

from .models import FileComparisonResult, is_empty
from .utils import timestamp_folder_name

logger = logging.getLogger(__name__)

_STYLE = """
    body { font-family: Arial, sans-serif; padding: 20px; background: #fdfdfd; }
    h1 { color: #2c3e50; }
    .match { color: green; }
    .diff { color: red; }
    .note { color: #b9770e; }
    .container { max-width: 1000px; margin: auto; }
    pre { background: #f4f4f4; padding: 10px; border-radius: 4px; white-space: pre-wrap; }
    .section { margin-bottom: 40px; border-bottom: 1px dashed #ddd; padding-bottom: 20px; }
    .file-name { font-weight: bold; }
    details { margin-top: 10px; }
    summary { cursor: pointer; color: #3498db; font-weight: bold; }
"""


def _pretty(content: Any) -> str:
    if content is None or is_empty(content):
        return "(empty or missing)"
    return json.dumps(content, indent=2, ensure_ascii=False, default=str)


class HtmlReporter:
    """Writes one timestamped HTML file per comparison run."""

    def __init__(self, reports_dir: str | Path):
        self.reports_dir = Path(reports_dir)

    def render(self, old_folder: str, new_folder: str, results: list[FileComparisonResult]) -> str:
        matched = sum(1 for r in results if r.matched)
        sections = "".join(self._render_result(r) for r in results)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>API Payload Comparison Report</title>
  <style>{_STYLE}  </style>
</head>
<body>
  <div class="container">
    <h1>API Payload Comparison Report</h1>
    <p><strong>Comparing folders:</strong></p>
    <ul>
      <li>Previous: <code>{escape(old_folder)}</code></li>
      <li>Latest: <code>{escape(new_folder)}</code></li>
    </ul>
    <p>{matched} matched | {len(results) - matched} differed | {len(results)} total files</p>
    <h2>Results</h2>
{sections}
  </div>
</body>
</html>
"""

    def _render_result(self, result: FileComparisonResult) -> str:
        status_class = "match" if result.matched else "diff"
        status_text = "MATCH" if result.matched else "DIFFERENCES FOUND"

        details = ""
        if result.differences:
            lines = "\n".join(
                f"[{d.severity.value}] {d.kind.value} {d.path}: {d.message}"
                for d in result.differences
            )
            css = "diff" if not result.matched else "note"
            details += f"""
      <details{' open' if not result.matched else ''}>
        <summary>View Differences (Text)</summary>
        <pre class="{css}">{escape(lines)}</pre>
      </details>"""

        if not result.matched:
            details += f"""
      <details>
        <summary>View Old Response</summary>
        <pre>{escape(_pretty(result.old_content))}</pre>
      </details>
      <details>
        <summary>View New Response</summary>
        <pre>{escape(_pretty(result.new_content))}</pre>
      </details>"""

        return f"""
    <div class="section">
      <div class="file-name">{escape(result.file_name)}</div>
      <div>Status: <span class="{status_class}">{status_text}</span></div>{details}
    </div>"""

    def generate_report(
        self,
        old_folder: str,
        new_folder: str,
        results: list[FileComparisonResult],
        now: Optional[datetime] = None
    ) -> str:
        """
        Render and write the report.

        Returns:
            Path of the written HTML file
        """
        if not self.reports_dir.exists():
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Reports directory created at: %s", self.reports_dir)

        file_path = self.reports_dir / f"comparison-report-{timestamp_folder_name(now)}.html"
        file_path.write_text(self.render(old_folder, new_folder, results), encoding="utf-8")
        return str(file_path)
