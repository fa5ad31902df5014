"""Tests for the command-line interface."""

import json
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import FakeEngine, write_script
from k6_runner import cli as cli_module
from k6_runner.cli import cli
from k6_runner.script.injector import HOOK_MARKER
from k6_runner.transport import ProbeResult


class CliEngine(FakeEngine):
    """FakeEngine that also answers ``version`` and ``inspect``."""

    inspect_code = 0

    def version(self) -> str:
        return "k6 v0.50.0"

    def inspect(self, script: Path) -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(
            ["k6", "inspect", str(script)],
            self.inspect_code,
            stdout="{}",
            stderr="SyntaxError: Unexpected token" if self.inspect_code else "",
        )


@pytest.fixture
def exit_codes() -> list[int]:
    """Exit codes the next engine returns, one per run."""
    return []


@pytest.fixture
def engines(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, exit_codes: list[int]
) -> list[CliEngine]:
    """Every engine the CLI creates, in creation order."""
    created: list[CliEngine] = []

    def factory(binary: str = "k6") -> CliEngine:
        engine = CliEngine(tmp_path / "reports", exit_codes=exit_codes)
        created.append(engine)
        return engine

    monkeypatch.setattr(cli_module, "K6Engine", factory)
    return created


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestDefaultRun:
    """Invocation without a command."""

    def test_empty_scripts_dir_shows_help(self, runner, env, engines) -> None:
        result = runner.invoke(cli, [], env=env)

        assert result.exit_code == 0
        assert "TEST DISCOVERY" in result.output
        assert engines == []

    def test_runs_every_script(self, runner, env, engines, scripts_dir, tmp_path) -> None:
        write_script(scripts_dir, "b.js")
        write_script(scripts_dir, "a.js")

        result = runner.invoke(cli, [], env=env)

        assert result.exit_code == 0, result.output
        assert "Test Suite Summary" in result.output
        assert "Total tests: 2" in result.output
        assert [c["tags"]["test_name"] for c in engines[0].calls] == ["a", "b"]
        assert list((tmp_path / "output").glob("batch-summary-*.json"))

    def test_failed_script_sets_exit_code(
        self, runner, env, engines, exit_codes, scripts_dir
    ) -> None:
        write_script(scripts_dir, "a.js")
        write_script(scripts_dir, "b.js")
        exit_codes.extend([0, 1])

        result = runner.invoke(cli, [], env=env)

        assert result.exit_code == 1
        assert "Passed: 1" in result.output
        assert "Failed: 1" in result.output
        assert len(engines[0].calls) == 2

    def test_missing_test_file(self, runner, env, engines) -> None:
        result = runner.invoke(cli, [], env={**env, "TEST_FILE": "missing.js"})

        assert result.exit_code == 1
        assert "Error: Test file not found" in result.output
        assert engines == []

    def test_test_file_needs_script_extension(self, runner, env, engines) -> None:
        result = runner.invoke(cli, [], env={**env, "TEST_FILE": "missing.test"})

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_bad_configuration(self, runner, env) -> None:
        result = runner.invoke(cli, [], env={**env, "MAX_OUTPUT_AGE_DAYS": "soon"})

        assert result.exit_code == 1
        assert "MAX_OUTPUT_AGE_DAYS" in result.output

    def test_check_target_rejects_malformed_url(
        self, runner, env, engines, scripts_dir
    ) -> None:
        write_script(scripts_dir, "a.js")

        result = runner.invoke(
            cli, ["--check-target"], env={**env, "BASE_URL": "localhost:8080"}
        )

        assert result.exit_code == 1
        assert "Error: Target not accessible: localhost:8080" in result.output
        assert engines[0].calls == []


class TestRunAndTest:
    """The ``run`` and ``test`` commands."""

    def test_run_single_file(self, runner, env, engines, scripts_dir) -> None:
        write_script(scripts_dir, "checkout.js")

        result = runner.invoke(cli, ["run", "checkout.js"], env=env)

        assert result.exit_code == 0, result.output
        assert "Test Summary" in result.output
        call = engines[0].calls[0]
        assert call["tags"]["project"] == "shop"
        assert call["content"].count(HOOK_MARKER) == 1
        assert call["env"]["BASE_URL"] == "http://target.test:8080"

    def test_builtin_template_with_overrides(self, runner, env, engines) -> None:
        result = runner.invoke(cli, ["test", "SMOKE", "--vus", "3", "--duration", "15s"], env=env)

        assert result.exit_code == 0, result.output
        args = engines[0].calls[0]["args"]
        assert args[args.index("--vus") + 1] == "3"
        assert args[args.index("--duration") + 1] == "15s"
        assert engines[0].calls[0]["tags"]["test_name"] == "smoke"

    def test_unknown_template(self, runner, env, engines) -> None:
        result = runner.invoke(cli, ["test", "chaos"], env=env)

        assert result.exit_code == 2
        assert engines == []


class TestBatchCommand:
    """The ``batch`` command."""

    def test_partial_failure(
        self, runner, env, engines, exit_codes, scripts_dir, tmp_path
    ) -> None:
        write_script(scripts_dir, "browse.js")
        write_script(scripts_dir, "checkout.js")
        batch_file = tmp_path / "batch.yaml"
        batch_file.write_text(
            "project: payments\n"
            "tests:\n"
            "  - name: browse\n"
            "    script: browse.js\n"
            "  - name: checkout\n"
            "    script: checkout.js\n"
        )
        exit_codes.extend([1, 0])

        result = runner.invoke(cli, ["batch", str(batch_file)], env=env)

        assert result.exit_code == 1
        assert len(engines[0].calls) == 2
        assert {c["tags"]["project"] for c in engines[0].calls} == {"payments"}

        summary_file = next((tmp_path / "output").glob("batch-summary-*.json"))
        summary = json.loads(summary_file.read_text())
        assert summary["project"] == "payments"
        assert [r["status"] for r in summary["results"]] == ["failed", "passed"]

    def test_invalid_batch_runs_nothing(self, runner, env, engines, tmp_path) -> None:
        batch_file = tmp_path / "batch.yaml"
        batch_file.write_text("tests:\n  - name: ghost\n    script: ghost.js\n")

        result = runner.invoke(cli, ["batch", str(batch_file)], env=env)

        assert result.exit_code == 1
        assert "Script not found: ghost.js" in result.output
        assert engines == []


class TestCleanup:
    """The ``cleanup`` command."""

    @pytest.fixture
    def old_report(self, tmp_path: Path) -> Path:
        reports = tmp_path / "reports"
        reports.mkdir()
        path = reports / "k6-report-old-20240101-000000.html"
        path.write_text("<html></html>")
        mtime = time.time() - 40 * 86400
        os.utime(path, (mtime, mtime))
        return path

    def test_stats_deletes_nothing(self, runner, env, old_report) -> None:
        result = runner.invoke(cli, ["cleanup", "stats"], env=env)

        assert result.exit_code == 0
        assert ">30 days: 1 file(s)" in result.output
        assert "expired: 1 file(s)" in result.output
        assert old_report.exists()

    def test_all_removes_expired_files(self, runner, env, old_report) -> None:
        result = runner.invoke(cli, ["cleanup", "all"], env=env)

        assert result.exit_code == 0
        assert "reports: removed 1 file(s)" in result.output
        assert "output: removed 0 file(s)" in result.output
        assert not old_report.exists()

    def test_max_age_overrides_environment(self, runner, env, old_report) -> None:
        result = runner.invoke(cli, ["cleanup", "reports", "--max-age", "60"], env=env)

        assert result.exit_code == 0
        assert old_report.exists()


class TestReportCommand:
    """The ``report`` command."""

    def test_describes_results_file(self, runner, env, tmp_path) -> None:
        output = tmp_path / "output"
        output.mkdir()
        results = output / "results-checkout-20240501-120000.json"
        results.write_text(
            '{"type":"Point","metric":"http_reqs"}\n'
            '{"type":"Point","metric":"vus"}\n'
        )

        result = runner.invoke(cli, ["report", str(results)], env=env)

        assert result.exit_code == 0
        assert "Test: checkout" in result.output
        assert "Samples: 2" in result.output
        assert "HTML report: not found" in result.output

    def test_missing_results_file(self, runner, env, tmp_path) -> None:
        result = runner.invoke(cli, ["report", str(tmp_path / "nope.json")], env=env)

        assert result.exit_code == 1
        assert "Results file not found" in result.output


class TestDashboard:
    """The ``dashboard`` command."""

    def test_disabled(self, runner, env) -> None:
        result = runner.invoke(cli, ["dashboard"], env={**env, "K6_WEB_DASHBOARD": "false"})

        assert result.exit_code == 0
        assert "disabled" in result.output

    @pytest.mark.parametrize("reachable,exit_code", [(True, 0), (False, 1)])
    def test_probe(self, runner, env, monkeypatch, reachable, exit_code) -> None:
        class StubProbe:
            def __init__(self, retry_policy=None):
                pass

            def __enter__(self):
                return self

            def __exit__(self, *args):
                pass

            def check(self, url):
                return ProbeResult(
                    url=url, reachable=reachable, status_code=200 if reachable else None
                )

        monkeypatch.setattr(cli_module, "HttpProbe", StubProbe)

        result = runner.invoke(cli, ["dashboard"], env=env)

        assert result.exit_code == exit_code
        assert "http://localhost:5665" in result.output


class TestValidate:
    """The ``validate`` command."""

    def test_valid_script(self, runner, env, engines, scripts_dir) -> None:
        write_script(scripts_dir, "checkout.js")

        result = runner.invoke(cli, ["validate", "checkout.js"], env=env)

        assert result.exit_code == 0
        assert "is valid" in result.output
        assert "will be injected" in result.output

    def test_invalid_script(self, runner, env, engines, scripts_dir, monkeypatch) -> None:
        write_script(scripts_dir, "broken.js", "export default function ( {\n")
        monkeypatch.setattr(CliEngine, "inspect_code", 1)

        result = runner.invoke(cli, ["validate", "broken.js"], env=env)

        assert result.exit_code == 1
        assert "is invalid" in result.output
        assert "SyntaxError" in result.output

    def test_undecodable_script(self, runner, env, engines, scripts_dir) -> None:
        (scripts_dir / "latin1.js").write_bytes(b"// caf\xe9\n")

        result = runner.invoke(cli, ["validate", "latin1.js"], env=env)

        assert result.exit_code == 1
        assert "Error: Cannot read script" in result.output


def test_help(runner, env) -> None:
    result = runner.invoke(cli, ["help"], env=env)

    assert result.exit_code == 0
    assert "ENVIRONMENT VARIABLES" in result.output


def test_help_ignores_bad_configuration(runner, env) -> None:
    result = runner.invoke(cli, ["help"], env={**env, "MAX_OUTPUT_AGE_DAYS": "soon"})

    assert result.exit_code == 0
    assert "ENVIRONMENT VARIABLES" in result.output


def test_version(runner, env, engines) -> None:
    result = runner.invoke(cli, ["version"], env=env)

    assert result.exit_code == 0
    assert "k6-runner 0.1.0" in result.output
    assert "k6 v0.50.0" in result.output


class TestMain:
    """Process exit codes of the console entry point."""

    @pytest.fixture(autouse=True)
    def process_env(self, monkeypatch, env, scripts_dir):
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        monkeypatch.setattr(sys, "argv", ["k6-runner"])
        write_script(scripts_dir, "checkout.js")

        previous = signal.getsignal(signal.SIGTERM)
        yield
        signal.signal(signal.SIGTERM, previous)

    def install_engine(self, monkeypatch, tmp_path, run) -> list[Path]:
        scripts: list[Path] = []

        class StoppedEngine(CliEngine):
            def run(self, args, env=None):
                scripts.append(Path(args[-1]))
                run()

        monkeypatch.setattr(
            cli_module, "K6Engine", lambda binary="k6": StoppedEngine(tmp_path / "reports")
        )
        return scripts

    def test_sigterm_exits_143_after_removing_script(self, monkeypatch, tmp_path) -> None:
        scripts = self.install_engine(
            monkeypatch,
            tmp_path,
            lambda: cli_module._handle_sigterm(signal.SIGTERM, None),
        )

        with pytest.raises(SystemExit) as exc_info:
            cli_module.main()

        assert exc_info.value.code == 128 + signal.SIGTERM
        assert len(scripts) == 1
        assert not scripts[0].exists()

    def test_interrupt_exits_130(self, monkeypatch, tmp_path) -> None:
        def interrupt():
            raise KeyboardInterrupt

        scripts = self.install_engine(monkeypatch, tmp_path, interrupt)

        with pytest.raises(SystemExit) as exc_info:
            cli_module.main()

        assert exc_info.value.code == 130
        assert not scripts[0].exists()

    def test_failed_run_exits_1(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setattr(
            cli_module,
            "K6Engine",
            lambda binary="k6": CliEngine(tmp_path / "reports", exit_codes=[1]),
        )

        with pytest.raises(SystemExit) as exc_info:
            cli_module.main()

        assert exc_info.value.code == 1
