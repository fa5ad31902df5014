"""Test executor - runs one test script through the k6 engine.

For each run:
1. Derive artifact paths and tags from the RunContext
2. Inject the summary hook and write a temporary script
3. Invoke the engine and capture its exit status
4. Delete the temporary script (on every exit path)
5. Probe for the JSON and HTML artifacts
"""

import logging
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Sequence

from ..config import TEST_SCRIPT_EXTENSION, RunnerConfig
from ..discovery.scanner import TestUnit
from ..errors import ConfigurationError, ExecutionError, ReportGenerationWarning
from ..script.injector import inject_summary_hook
from .engine import K6Engine, build_run_args, build_run_env

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
REPORT_KIND = "k6-report"
RESULTS_KIND = "results"


def format_timestamp(moment: datetime) -> str:
    """Render a timestamp with one-second resolution."""
    return moment.strftime(TIMESTAMP_FORMAT)


def artifact_name(kind: str, test_name: str, timestamp: str, ext: str) -> str:
    """File name of an artifact: ``<kind>-<testName>-<timestamp>.<ext>``."""
    return f"{kind}-{test_name}-{timestamp}.{ext}"


@dataclass(frozen=True)
class RunArtifact:
    """Artifact locations for one run."""
    json_path: Path
    html_path: Path
    test_name: str
    timestamp: str


@dataclass(frozen=True)
class RunContext:
    """Everything that identifies one run."""
    test_unit: TestUnit
    timestamp: str
    target_url: str
    project_name: str
    environment_name: str

    @property
    def test_name(self) -> str:
        return self.test_unit.name

    def artifacts(self, reports_dir: Path, output_dir: Path) -> RunArtifact:
        """Derive artifact paths under the given roots."""
        return RunArtifact(
            json_path=Path(output_dir)
            / artifact_name(RESULTS_KIND, self.test_name, self.timestamp, "json"),
            html_path=Path(reports_dir)
            / artifact_name(REPORT_KIND, self.test_name, self.timestamp, "html"),
            test_name=self.test_name,
            timestamp=self.timestamp,
        )

    def tags(self) -> dict[str, str]:
        """Engine tags: project, environment, test name, timestamp, then unit tags."""
        tags = {
            "project": self.project_name,
            "environment": self.environment_name,
            "test_name": self.test_name,
            "timestamp": self.timestamp,
        }
        for key, value in self.test_unit.tags.items():
            tags.setdefault(str(key), str(value))
        return tags


@dataclass(frozen=True)
class ArtifactPresence:
    """Which artifacts exist after a run."""
    json: bool = False
    html: bool = False


@dataclass(frozen=True)
class RunOutcome:
    """Result of one run. Never mutated after creation."""
    run_context: RunContext
    exit_code: int
    artifact: RunArtifact
    artifacts_present: ArtifactPresence = field(default_factory=ArtifactPresence)
    warnings: tuple[ReportGenerationWarning, ...] = ()
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def passed(self) -> bool:
        return self.exit_code == 0

    @property
    def test_name(self) -> str:
        return self.run_context.test_name

    def to_error(self) -> Optional[ExecutionError]:
        """The failure as an ExecutionError, or None if the run passed."""
        if self.passed:
            return None
        return ExecutionError(self.test_name, self.exit_code, self.error or "")


@contextmanager
def temporary_script(content: str, directory: Path, prefix: str) -> Iterator[Path]:
    """Write ``content`` to a uniquely named script and remove it on exit.

    Removal happens on every exit path, including KeyboardInterrupt and the
    exception raised by the CLI's SIGTERM handler.
    """
    directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(
        prefix=prefix, suffix=TEST_SCRIPT_EXTENSION, dir=str(directory)
    )
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        log.debug("Removed temporary script %s", path)


class TestExecutor:
    """Runs single test units through the engine.

    The executor owns the temporary augmented script of the run in flight.
    """

    __test__ = False

    def __init__(
        self,
        config: RunnerConfig,
        engine: Optional[K6Engine] = None,
        extra_args: Sequence[str] = (),
    ):
        """Initialize test executor.

        Args:
            config: Runner configuration.
            engine: Engine wrapper. Defaults to ``config.k6_binary``.
            extra_args: Engine flags appended to every ``k6 run``.
        """
        self.config = config
        self.engine = engine or K6Engine(config.k6_binary)
        self.extra_args = tuple(extra_args)

    def setup_directories(self) -> None:
        """Create the artifact roots if they are missing.

        Raises:
            ConfigurationError: If a directory cannot be created.
        """
        for directory in (self.config.reports_dir, self.config.output_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(
                    f"Cannot create artifact directory {directory}: {e}"
                ) from e

    def execute(self, context: RunContext, content: Optional[str] = None) -> RunOutcome:
        """Run one test and return its outcome.

        Args:
            context: Run context for this unit.
            content: Script text. Read from the unit when omitted.

        Returns:
            RunOutcome. Engine failures are recorded, not raised.
        """
        self.setup_directories()
        artifact = context.artifacts(self.config.reports_dir, self.config.output_dir)
        if content is None:
            try:
                content = context.test_unit.read_content()
            except (OSError, UnicodeDecodeError) as e:
                log.error("Cannot read script %s: %s", context.test_unit.path, e)
                return RunOutcome(
                    run_context=context,
                    exit_code=1,
                    artifact=artifact,
                    error=f"Cannot read script: {e}",
                )

        log.info("Starting k6 test: %s", context.test_name)
        log.info("Script: %s", context.test_unit.path)
        log.info("Target: %s", context.target_url)
        if self.config.dashboard_enabled:
            log.info("Dashboard: %s", self.config.dashboard_url)

        if self.config.inject_summary:
            script_text = inject_summary_hook(content, artifact.html_path)
            html_export = None
        else:
            script_text = content
            html_export = artifact.html_path

        env = build_run_env(self.config, context.target_url, html_export=html_export)

        start_time = time.monotonic()
        prefix = f"enhanced_{context.test_name}_{context.timestamp}_"
        with temporary_script(script_text, self.config.temp_dir, prefix) as script:
            args = build_run_args(
                script, artifact.json_path, context.tags(), self.extra_args
            )
            result = self.engine.run(args, env=env)
        duration = time.monotonic() - start_time

        if result.exit_code == 0:
            log.info("Test completed successfully: %s", context.test_name)
        else:
            log.error(
                "Test failed: %s (exit code: %d)", context.test_name, result.exit_code
            )

        presence, warnings = self._probe_artifacts(artifact)
        return RunOutcome(
            run_context=context,
            exit_code=result.exit_code,
            artifact=artifact,
            artifacts_present=presence,
            warnings=warnings,
            error=result.error,
            duration=duration,
        )

    def _probe_artifacts(
        self, artifact: RunArtifact
    ) -> tuple[ArtifactPresence, tuple[ReportGenerationWarning, ...]]:
        """Check which artifacts the engine produced."""
        presence = ArtifactPresence(
            json=artifact.json_path.is_file(),
            html=artifact.html_path.is_file(),
        )
        warnings = []
        if presence.html:
            log.info("HTML Report: %s", artifact.html_path)
        else:
            warnings.append(ReportGenerationWarning("HTML report", artifact.html_path))
        if presence.json:
            log.info("JSON Output: %s", artifact.json_path)
        else:
            warnings.append(ReportGenerationWarning("JSON output", artifact.json_path))

        for warning in warnings:
            log.warning("%s", warning)
        return presence, tuple(warnings)
