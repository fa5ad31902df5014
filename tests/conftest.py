"""Shared fixtures: a fake k6 engine and a config rooted in tmp_path."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Mapping, Optional, Sequence

import pytest

from k6_runner.config import RunnerConfig
from k6_runner.runner.engine import EngineResult, K6Engine
from k6_runner.runner.executor import REPORT_KIND, artifact_name


class FakeEngine(K6Engine):
    """Stands in for the k6 binary.

    Records every invocation and writes the artifacts a real run would.
    """

    def __init__(
        self,
        reports_dir: Path,
        exit_codes: Sequence[int] = (),
        write_json: bool = True,
        write_html: bool = True,
    ):
        super().__init__("k6")
        self.reports_dir = reports_dir
        self.exit_codes = list(exit_codes)
        self.write_json = write_json
        self.write_html = write_html
        self.calls: list[dict] = []

    def ensure_available(self) -> str:
        return "/usr/bin/k6"

    def run(self, args: Sequence[str], env: Optional[Mapping[str, str]] = None) -> EngineResult:
        args = list(args)
        script = Path(args[-1])
        tags = dict(
            args[i + 1].split("=", 1) for i, a in enumerate(args) if a == "--tag"
        )
        json_path = Path(args[args.index("--out") + 1].split("=", 1)[1])

        self.calls.append({
            "args": args,
            "env": dict(env or {}),
            "script": script,
            "script_exists": script.exists(),
            "content": script.read_text(encoding="utf-8"),
            "tags": tags,
        })

        if self.write_json:
            json_path.write_text('{"type":"Point","metric":"http_reqs"}\n')
        if self.write_html:
            html = self.reports_dir / artifact_name(
                REPORT_KIND, tags["test_name"], tags["timestamp"], "html"
            )
            html.write_text("<html></html>")

        index = len(self.calls) - 1
        exit_code = self.exit_codes[index] if index < len(self.exit_codes) else 0
        return EngineResult(exit_code=exit_code)


class StepClock:
    """Clock that advances one minute per call."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, 0), step_seconds: int = 60):
        self.current = start
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scripts"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path: Path, scripts_dir: Path) -> RunnerConfig:
    return RunnerConfig(
        base_url="http://target.test:8080",
        scripts_dir=scripts_dir,
        reports_dir=tmp_path / "reports",
        output_dir=tmp_path / "output",
        temp_dir=tmp_path / "tmp",
        project_name="shop",
        environment_name="staging",
    )


@pytest.fixture
def env(tmp_path: Path, scripts_dir: Path) -> dict[str, str]:
    """Environment variables matching the ``config`` fixture."""
    return {
        "BASE_URL": "http://target.test:8080",
        "SCRIPTS_DIR": str(scripts_dir),
        "REPORTS_DIR": str(tmp_path / "reports"),
        "OUTPUT_DIR": str(tmp_path / "output"),
        "TMPDIR_SCRIPTS": str(tmp_path / "tmp"),
        "PROJECT_NAME": "shop",
        "TEST_ENVIRONMENT": "staging",
        "TEST_FILE": "",
        "TEST_FOLDER": "",
    }


def write_script(directory: Path, name: str, body: str = "export default function () {}\n") -> Path:
    path = directory / name
    path.write_text(body, encoding="utf-8")
    return path
