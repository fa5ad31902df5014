"""Batch aggregation - drives the executor over every unit in order.

One unit's failure never aborts the batch. The overall result fails if
and only if at least one unit failed.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from ..config import RunnerConfig
from ..discovery.scanner import TestUnit
from .executor import RunContext, RunOutcome, TestExecutor, format_timestamp

log = logging.getLogger(__name__)

SEPARATOR = "━" * 52

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class BatchResult:
    """Accumulated outcomes of a batch.

    Counts are derived from ``outcomes``, so
    ``passed + failed == total == len(outcomes)`` always holds.
    """
    outcomes: tuple[RunOutcome, ...] = ()

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def passed(self) -> int:
        return sum(1 for o in self.outcomes if o.passed)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.passed)

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 1 if self.failed > 0 else 0

    def add(self, outcome: RunOutcome) -> "BatchResult":
        """Return a new result with ``outcome`` appended."""
        return replace(self, outcomes=self.outcomes + (outcome,))

    def to_dict(self) -> dict:
        """Serializable summary of the batch."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "results": [
                {
                    "test_name": o.test_name,
                    "status": "passed" if o.passed else "failed",
                    "exit_code": o.exit_code,
                    "timestamp": o.run_context.timestamp,
                    "duration": round(o.duration, 3),
                    "json": str(o.artifact.json_path) if o.artifacts_present.json else None,
                    "html": str(o.artifact.html_path) if o.artifacts_present.html else None,
                    "error": o.error,
                }
                for o in self.outcomes
            ],
        }


class BatchRunner:
    """Runs a sequence of test units one after another."""

    def __init__(
        self,
        executor: TestExecutor,
        clock: Optional[Clock] = None,
    ):
        """Initialize batch runner.

        Args:
            executor: Executor used for every unit.
            clock: Source of run timestamps. Defaults to ``datetime.now``.
        """
        self.executor = executor
        self.clock = clock or datetime.now
        self._used: set[tuple[str, str]] = set()

    @property
    def config(self) -> RunnerConfig:
        return self.executor.config

    def make_context(self, unit: TestUnit) -> RunContext:
        """Build the RunContext for ``unit`` with a timestamp unused in this batch."""
        moment = self.clock()
        timestamp = format_timestamp(moment)
        while (unit.name, timestamp) in self._used:
            moment += timedelta(seconds=1)
            timestamp = format_timestamp(moment)
        self._used.add((unit.name, timestamp))

        return RunContext(
            test_unit=unit,
            timestamp=timestamp,
            target_url=self.config.base_url,
            project_name=self.config.project_name,
            environment_name=self.config.environment_name,
        )

    def run(self, units: Iterable[TestUnit]) -> BatchResult:
        """Execute every unit in order and fold the outcomes.

        Args:
            units: Units in execution order.

        Returns:
            BatchResult covering every unit.
        """
        units = tuple(units)
        result = BatchResult()
        total = len(units)

        for index, unit in enumerate(units, start=1):
            if total > 1:
                log.info("Test %d/%d: %s", index, total, unit.name)
            outcome = self._run_unit(unit)
            result = result.add(outcome)

            if total > 1:
                log.info(
                    "%s %s (exit code: %d)",
                    "PASS" if outcome.passed else "FAIL",
                    unit.name,
                    outcome.exit_code,
                )
                log.info(SEPARATOR)

        return result

    def _run_unit(self, unit: TestUnit) -> RunOutcome:
        context = self.make_context(unit)
        return self.executor.execute(context)
