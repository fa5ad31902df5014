"""Batch configuration data models.

A batch file names the project, environment and target, and lists the
scripts to run in order.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..discovery.scanner import TestUnit


@dataclass
class BatchEntry:
    """One test in a batch."""
    name: str
    script: str
    tags: dict[str, str] = field(default_factory=dict)
    resolved_path: Optional[Path] = None

    def to_unit(self) -> TestUnit:
        """Convert to a TestUnit named after the entry."""
        path = self.resolved_path or Path(self.script)
        return TestUnit(path=path, name=self.name, tags=dict(self.tags))


@dataclass
class BatchConfig:
    """A parsed batch configuration file."""
    source: Path
    project: Optional[str] = None
    environment: Optional[str] = None
    base_url: Optional[str] = None
    tests: list[BatchEntry] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return len(self.tests)

    def units(self) -> tuple[TestUnit, ...]:
        return tuple(entry.to_unit() for entry in self.tests)


@dataclass
class ValidationError:
    """A single validation error."""
    path: str
    message: str
    severity: str = "error"  # "error" or "warning"


@dataclass
class ValidationResult:
    """Result of batch validation."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __str__(self) -> str:
        if self.valid:
            msg = "Valid"
            if self.warnings:
                msg += f" ({self.warning_count} warnings)"
            return msg
        return f"Invalid: {self.error_count} errors, {self.warning_count} warnings"
