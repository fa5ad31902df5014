"""Reporting module - batch summaries and results files."""

from .json_reporter import (
    JsonReporter,
    ResultsFileSummary,
    parse_artifact_name,
    summarize_results_file,
)

__all__ = [
    "JsonReporter",
    "ResultsFileSummary",
    "parse_artifact_name",
    "summarize_results_file",
]
