"""Runner module - Test orchestration."""

from .aggregator import BatchResult, BatchRunner
from .engine import EngineResult, K6Engine, build_run_args, build_run_env
from .executor import (
    ArtifactPresence,
    RunArtifact,
    RunContext,
    RunOutcome,
    TestExecutor,
    artifact_name,
    format_timestamp,
    temporary_script,
)

__all__ = [
    "BatchResult",
    "BatchRunner",
    "EngineResult",
    "K6Engine",
    "build_run_args",
    "build_run_env",
    "ArtifactPresence",
    "RunArtifact",
    "RunContext",
    "RunOutcome",
    "TestExecutor",
    "artifact_name",
    "format_timestamp",
    "temporary_script",
]
