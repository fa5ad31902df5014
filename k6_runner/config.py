"""Runner configuration resolved from environment variables.

The environment is read exactly once, in :meth:`RunnerConfig.from_env`.
Every component receives the resulting immutable value explicitly.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

TEST_SCRIPT_EXTENSION = ".js"

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_SCRIPTS_DIR = "/scripts"
DEFAULT_REPORTS_DIR = "/reports"
DEFAULT_OUTPUT_DIR = "/output"
DEFAULT_PROJECT_NAME = "k6-tests"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_MAX_REPORTS_AGE_DAYS = 30
DEFAULT_MAX_OUTPUT_AGE_DAYS = 7
DEFAULT_DASHBOARD_PORT = 5665
DEFAULT_DASHBOARD_HOST = "0.0.0.0"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RunnerConfig:
    """Immutable runner settings."""
    base_url: str = DEFAULT_BASE_URL
    test_file: Optional[str] = None
    test_folder: Optional[Path] = None
    scripts_dir: Path = Path(DEFAULT_SCRIPTS_DIR)
    reports_dir: Path = Path(DEFAULT_REPORTS_DIR)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    project_name: str = DEFAULT_PROJECT_NAME
    environment_name: str = DEFAULT_ENVIRONMENT
    max_reports_age_days: int = DEFAULT_MAX_REPORTS_AGE_DAYS
    max_output_age_days: int = DEFAULT_MAX_OUTPUT_AGE_DAYS
    k6_binary: str = "k6"
    dashboard_enabled: bool = True
    dashboard_port: int = DEFAULT_DASHBOARD_PORT
    dashboard_host: str = DEFAULT_DASHBOARD_HOST
    inject_summary: bool = True
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunnerConfig":
        """Build a config from an environment mapping.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Resolved RunnerConfig.

        Raises:
            ConfigurationError: If a numeric or boolean setting is malformed.
        """
        env = os.environ if environ is None else environ

        test_folder = _get_str(env, "TEST_FOLDER")
        temp_dir = _get_str(env, "TMPDIR_SCRIPTS")
        log_level = (_get_str(env, "LOG_LEVEL") or "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"LOG_LEVEL is not a logging level: '{log_level}'")

        return cls(
            base_url=_get_str(env, "BASE_URL") or DEFAULT_BASE_URL,
            test_file=_get_str(env, "TEST_FILE"),
            test_folder=Path(test_folder) if test_folder else None,
            scripts_dir=Path(_get_str(env, "SCRIPTS_DIR") or DEFAULT_SCRIPTS_DIR),
            reports_dir=Path(_get_str(env, "REPORTS_DIR") or DEFAULT_REPORTS_DIR),
            output_dir=Path(_get_str(env, "OUTPUT_DIR") or DEFAULT_OUTPUT_DIR),
            project_name=_get_str(env, "PROJECT_NAME") or DEFAULT_PROJECT_NAME,
            environment_name=_get_str(env, "TEST_ENVIRONMENT") or DEFAULT_ENVIRONMENT,
            max_reports_age_days=_get_int(
                env, "MAX_REPORTS_AGE_DAYS", DEFAULT_MAX_REPORTS_AGE_DAYS
            ),
            max_output_age_days=_get_int(
                env, "MAX_OUTPUT_AGE_DAYS", DEFAULT_MAX_OUTPUT_AGE_DAYS
            ),
            k6_binary=_get_str(env, "K6_BINARY") or "k6",
            dashboard_enabled=_get_bool(env, "K6_WEB_DASHBOARD", True),
            dashboard_port=_get_int(env, "K6_WEB_DASHBOARD_PORT", DEFAULT_DASHBOARD_PORT),
            dashboard_host=_get_str(env, "K6_WEB_DASHBOARD_HOST") or DEFAULT_DASHBOARD_HOST,
            inject_summary=_get_bool(env, "K6_INJECT_SUMMARY", True),
            temp_dir=Path(temp_dir) if temp_dir else Path(tempfile.gettempdir()),
            log_level=log_level,
        )

    @property
    def dashboard_url(self) -> str:
        """Local URL of the engine's web dashboard."""
        host = "localhost" if self.dashboard_host == "0.0.0.0" else self.dashboard_host
        return f"http://{host}:{self.dashboard_port}"


def _get_str(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get_str(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value}")
    return value


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get_str(env, name)
    if raw is None:
        return default
    if raw.lower() in _TRUE_VALUES:
        return True
    if raw.lower() in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{raw}'")
