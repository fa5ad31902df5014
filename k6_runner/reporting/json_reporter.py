"""JSON reporting for batches and raw k6 output files.

Writes batch summaries and describes the raw ``--out json`` files the
engine produces (one JSON object per line).
"""

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..runner.aggregator import BatchResult
from ..runner.executor import REPORT_KIND, RESULTS_KIND, artifact_name

log = logging.getLogger(__name__)

_ARTIFACT_PATTERN = re.compile(
    rf"^{RESULTS_KIND}-(?P<test_name>.+)-(?P<timestamp>\d{{8}}-\d{{6}})\.json$"
)


@dataclass
class ResultsFileSummary:
    """What a raw results file contains."""
    path: Path
    test_name: Optional[str] = None
    timestamp: Optional[str] = None
    html_report: Optional[Path] = None
    samples: Counter = field(default_factory=Counter)
    invalid_lines: int = 0

    @property
    def total_samples(self) -> int:
        return sum(self.samples.values())


class JsonReporter:
    """Generates JSON reports from batch results."""

    def generate(
        self,
        result: BatchResult,
        project: str,
        environment: str,
        target_url: str,
    ) -> dict[str, Any]:
        """Generate a batch report.

        Args:
            result: Finished batch.
            project: Project tag of the batch.
            environment: Environment tag of the batch.
            target_url: Target URL the batch ran against.

        Returns:
            Report dictionary ready for JSON serialization.
        """
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "project": project,
            "environment": environment,
            "target": target_url,
            "status": "passed" if result.all_passed else "failed",
        }
        report.update(result.to_dict())
        return report

    def save(self, report: dict[str, Any], path: Path) -> Path:
        """Save report to a JSON file.

        Args:
            report: Report dictionary.
            path: Output file path.

        Returns:
            Path to the saved file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return path


def parse_artifact_name(path: Path) -> tuple[Optional[str], Optional[str]]:
    """Extract ``(test_name, timestamp)`` from a results file name."""
    match = _ARTIFACT_PATTERN.match(Path(path).name)
    if not match:
        return None, None
    return match.group("test_name"), match.group("timestamp")


def summarize_results_file(
    path: Path, reports_dir: Optional[Path] = None
) -> ResultsFileSummary:
    """Describe a raw results file.

    Counts ``Point`` samples per metric name and locates the HTML report of
    the same run in ``reports_dir``.

    Raises:
        FileNotFoundError: If the results file doesn't exist.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Results file not found: {path}")

    summary = ResultsFileSummary(path=path)
    summary.test_name, summary.timestamp = parse_artifact_name(path)

    if summary.test_name and reports_dir is not None:
        html = Path(reports_dir) / artifact_name(
            REPORT_KIND, summary.test_name, summary.timestamp, "html"
        )
        if html.is_file():
            summary.html_report = html

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                summary.invalid_lines += 1
                continue
            if isinstance(record, dict) and record.get("type") == "Point":
                summary.samples[record.get("metric", "unknown")] += 1

    if summary.invalid_lines:
        log.warning("%d unreadable line(s) in %s", summary.invalid_lines, path)
    return summary
