"""Error taxonomy for the k6 runner.

Configuration and discovery errors are fatal and abort before any run.
Execution errors, report warnings and retention errors are recorded on
the result objects and only surface in aggregate.
"""

from pathlib import Path
from typing import Optional


class RunnerError(Exception):
    """Base class for all runner errors."""


class ConfigurationError(RunnerError):
    """A setting or selector could not be resolved."""


class InvalidSelector(ConfigurationError):
    """A test selector does not name a test script (wrong extension)."""


class TestFileNotFound(ConfigurationError):
    """The explicitly selected test file does not exist."""

    __test__ = False


class TestFolderNotFound(ConfigurationError):
    """The explicitly selected test folder does not exist."""

    __test__ = False


class BatchConfigError(ConfigurationError):
    """A batch configuration file is missing or malformed."""


class EngineNotFound(ConfigurationError):
    """The load-generation engine binary is not on PATH."""


class EmptySelection(RunnerError):
    """An explicit selector resolved to zero test units."""


class ExecutionError(RunnerError):
    """The engine failed for one unit. Recorded, never fatal to a batch."""

    def __init__(self, test_name: str, exit_code: int, message: str = ""):
        self.test_name = test_name
        self.exit_code = exit_code
        detail = f": {message}" if message else ""
        super().__init__(f"Test '{test_name}' failed with exit code {exit_code}{detail}")


class ReportGenerationWarning(UserWarning):
    """An expected artifact was not produced by a run."""

    def __init__(self, kind: str, path: Path):
        self.kind = kind
        self.path = Path(path)
        super().__init__(f"{kind} artifact not generated: {path}")


class RetentionError(RunnerError):
    """A file could not be removed, or a directory listed, during cleanup."""

    def __init__(
        self,
        path: Path,
        cause: Optional[BaseException] = None,
        action: str = "remove",
    ):
        self.path = Path(path)
        self.cause = cause
        self.action = action
        reason = f": {cause}" if cause else ""
        super().__init__(f"Failed to {action} {path}{reason}")
