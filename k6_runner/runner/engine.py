"""k6 engine invocation.

The engine is an external executable. This module only builds its command
lines and environment and runs it as a child process.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..config import RunnerConfig
from ..errors import EngineNotFound

log = logging.getLogger(__name__)

ENGINE_NOT_LAUNCHED = 127


@dataclass(frozen=True)
class EngineResult:
    """Exit status of one engine invocation."""
    exit_code: int
    error: Optional[str] = None


class K6Engine:
    """Runs the k6 binary."""

    def __init__(self, binary: str = "k6"):
        self.binary = binary

    def ensure_available(self) -> str:
        """Return the resolved binary path.

        Raises:
            EngineNotFound: If the binary is not on PATH.
        """
        resolved = shutil.which(self.binary)
        if resolved is None:
            raise EngineNotFound(f"k6 is not installed or not in PATH: {self.binary}")
        return resolved

    def run(self, args: Sequence[str], env: Optional[Mapping[str, str]] = None) -> EngineResult:
        """Run ``k6 <args>`` with output streaming to the console.

        Args:
            args: Arguments after the binary name.
            env: Extra environment variables layered over ``os.environ``.

        Returns:
            EngineResult. A launch failure is reported, not raised.
        """
        cmd = [self.binary, *args]
        child_env = dict(os.environ)
        if env:
            child_env.update(env)

        log.debug("Executing: %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, env=child_env, check=False)
        except OSError as e:
            log.error("Could not launch %s: %s", self.binary, e)
            return EngineResult(exit_code=ENGINE_NOT_LAUNCHED, error=str(e))
        return EngineResult(exit_code=proc.returncode)

    def capture(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        """Run ``k6 <args>`` and capture its output as text."""
        return subprocess.run(
            [self.binary, *args],
            capture_output=True,
            text=True,
            check=False,
        )

    def version(self) -> str:
        """Engine version string."""
        proc = self.capture(["version"])
        return (proc.stdout or proc.stderr).strip()

    def inspect(self, script: Path) -> subprocess.CompletedProcess:
        """Let the engine load a script and resolve its options."""
        return self.capture(["inspect", str(script)])


def build_run_args(
    script: Path,
    json_path: Path,
    tags: Mapping[str, str],
    extra_args: Sequence[str] = (),
) -> list[str]:
    """Arguments for ``k6 run`` with JSON output and run tags.

    Args:
        script: Script to execute.
        json_path: Raw metrics output file.
        tags: Tags attached to every metric sample, in order.
        extra_args: Additional engine flags (e.g. ``--vus``).
    """
    args = ["run", "--out", f"json={json_path}"]
    for key, value in tags.items():
        args += ["--tag", f"{key}={value}"]
    args += list(extra_args)
    args.append(str(script))
    return args


def build_run_env(
    config: RunnerConfig,
    base_url: str,
    html_export: Optional[Path] = None,
) -> dict[str, str]:
    """Environment for one run: the target URL plus dashboard settings."""
    env = {
        "BASE_URL": base_url,
        "K6_WEB_DASHBOARD": "true" if config.dashboard_enabled else "false",
        "K6_WEB_DASHBOARD_PORT": str(config.dashboard_port),
        "K6_WEB_DASHBOARD_HOST": config.dashboard_host,
        "K6_WEB_DASHBOARD_OPEN": "false",
    }
    if html_export is not None and config.dashboard_enabled:
        env["K6_WEB_DASHBOARD_EXPORT"] = str(html_export)
    return env
