"""CLI entry point for the k6 runner.

Invoked as:
    k6-runner [command] [options]

Without a command, test scripts are discovered from the environment
(TEST_FILE, TEST_FOLDER or SCRIPTS_DIR) and run as one batch.
"""

import functools
import logging
import signal
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import click

from . import __version__
from .batch import parse_batch_file, validate_batch
from .config import RunnerConfig
from .discovery import TestUnit, discover_tests, resolve_test_file
from .errors import ConfigurationError, RunnerError
from .reporting import JsonReporter, summarize_results_file
from .retention import RetentionManager, RetentionPolicy, format_size
from .runner import BatchResult, BatchRunner, K6Engine, TestExecutor, format_timestamp
from .script import TEMPLATES, engine_overrides, get_template, has_summary_hook
from .transport import HttpProbe, RetryPolicy

log = logging.getLogger("k6_runner")

SEPARATOR = "━" * 52

STATUS_SYMBOLS = {
    True: "✅",
    False: "❌",
}

HELP_TEXT = """K6 Runner - batch load testing with the k6 web dashboard

ENVIRONMENT VARIABLES:
    TEST_FILE              Single test file to run (e.g. "load-test.js")
    TEST_FOLDER            Folder containing tests to run (e.g. "/scripts/api-tests")
    BASE_URL               Target application URL (default: http://localhost:8080)
    PROJECT_NAME           Project tag for every run (default: k6-tests)
    TEST_ENVIRONMENT       Environment tag for every run (default: development)
    SCRIPTS_DIR            Default scripts directory (default: /scripts)
    REPORTS_DIR            HTML report directory (default: /reports)
    OUTPUT_DIR             JSON output directory (default: /output)
    MAX_REPORTS_AGE_DAYS   Retention for reports (default: 30)
    MAX_OUTPUT_AGE_DAYS    Retention for JSON output (default: 7)
    K6_WEB_DASHBOARD       Enable web dashboard (default: true)
    K6_WEB_DASHBOARD_PORT  Dashboard port (default: 5665)
    K6_WEB_DASHBOARD_HOST  Dashboard host (default: 0.0.0.0)
    K6_INJECT_SUMMARY      Inject the HTML summary hook (default: true)

TEST DISCOVERY:
    1. If TEST_FILE is set: run that file from SCRIPTS_DIR
    2. If TEST_FOLDER is set: run all .js files in the folder
    3. Otherwise: run all .js files in SCRIPTS_DIR
    4. If no .js files are found: show this help and exit

COMMANDS:
    run <file>                                  Run one test script
    test <type> [--vus N] [--duration D]        Run a built-in scenario
    report <json-file>                          Describe a JSON results file
    batch <config-file>                         Run the tests of a batch file
    cleanup {reports|output|all|stats} [--max-age N]
                                                Remove or report old artifacts
    dashboard                                   Check the web dashboard
    validate <file>                             Check a script with k6 inspect
    help                                        Show this help
    version                                     Show versions

OUTPUTS:
    HTML report: $REPORTS_DIR/k6-report-<test-name>-<timestamp>.html
    JSON output: $OUTPUT_DIR/results-<test-name>-<timestamp>.json
"""


class ShutdownRequested(Exception):
    """Raised from the SIGTERM handler so cleanup code runs."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Received signal {signum}")


def runner_errors(func):
    """Turn RunnerError into a click error (exit code 1)."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RunnerError as e:
            raise click.ClickException(str(e)) from e

    return wrapper


def print_batch_summary(result: BatchResult, config: RunnerConfig) -> None:
    """Echo totals and artifact locations of a finished batch."""
    click.echo("")
    click.echo(SEPARATOR)
    click.echo("Test Suite Summary" if result.total > 1 else "Test Summary")
    click.echo(SEPARATOR)
    click.echo(f"Total tests: {result.total}")
    click.echo(f"Passed: {result.passed}")
    click.echo(f"Failed: {result.failed}")

    for outcome in result.outcomes:
        click.echo(
            f"{STATUS_SYMBOLS[outcome.passed]} {outcome.test_name} "
            f"(exit code: {outcome.exit_code})"
        )
        if outcome.artifacts_present.html:
            click.echo(f"  HTML: {outcome.artifact.html_path}")
        if outcome.artifacts_present.json:
            click.echo(f"  JSON: {outcome.artifact.json_path}")
        if outcome.error:
            click.echo(f"  Error: {outcome.error}")

    click.echo("")
    click.echo(f"Reports saved to: {config.reports_dir}")
    click.echo(f"Outputs saved to: {config.output_dir}")


def check_target(config: RunnerConfig) -> None:
    """Fail unless BASE_URL answers.

    Raises:
        ConfigurationError: If the target is not reachable.
    """
    with HttpProbe() as probe:
        result = probe.check(config.base_url)
    if not result.reachable:
        raise ConfigurationError(
            f"Target not accessible: {config.base_url} ({result.error})"
        )
    log.info("Target reachable: %s (HTTP %s)", config.base_url, result.status_code)


def execute_units(
    config: RunnerConfig,
    units: Sequence[TestUnit],
    extra_args: Sequence[str] = (),
    probe_target: bool = False,
) -> int:
    """Run ``units`` as one batch and return the process exit code.

    Raises:
        ConfigurationError: If the engine is missing or the target is down.
    """
    engine = K6Engine(config.k6_binary)
    engine.ensure_available()
    if probe_target:
        check_target(config)

    log.info("Target URL: %s", config.base_url)
    log.info("Project: %s", config.project_name)
    log.info("Environment: %s", config.environment_name)

    executor = TestExecutor(config, engine=engine, extra_args=extra_args)
    executor.setup_directories()
    result = BatchRunner(executor).run(units)

    print_batch_summary(result, config)
    save_batch_report(result, config)
    return result.exit_code


def save_batch_report(result: BatchResult, config: RunnerConfig) -> Optional[Path]:
    """Write the batch summary JSON next to the raw outputs."""
    reporter = JsonReporter()
    report = reporter.generate(
        result,
        project=config.project_name,
        environment=config.environment_name,
        target_url=config.base_url,
    )
    path = config.output_dir / f"batch-summary-{format_timestamp(datetime.now())}.json"
    try:
        return reporter.save(report, path)
    except OSError as e:
        log.warning("Failed to save batch summary %s: %s", path, e)
        return None


def _load_config() -> RunnerConfig:
    try:
        return RunnerConfig.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@click.group(invoke_without_command=True)
@click.option(
    "--check-target",
    is_flag=True,
    help="Probe BASE_URL before running any test.",
)
@click.pass_context
@runner_errors
def cli(ctx: click.Context, check_target: bool) -> None:
    """Run k6 load tests in batches and manage their artifacts."""
    if ctx.invoked_subcommand == "help":
        return

    config = _load_config()
    logging.getLogger("k6_runner").setLevel(config.log_level)
    ctx.obj = config
    ctx.meta["check_target"] = check_target

    if ctx.invoked_subcommand is not None:
        return

    discovery = discover_tests(config)
    if discovery.is_empty:
        log.warning("No .js files found in scripts directory: %s", discovery.source)
        log.info("Mount your test scripts to %s or set TEST_FILE", config.scripts_dir)
        click.echo(HELP_TEXT)
        ctx.exit(0)

    log.info(
        "Found %d test file(s) in %s (%s mode)",
        len(discovery.units),
        discovery.source,
        discovery.mode.value,
    )
    ctx.exit(execute_units(config, discovery.units, probe_target=check_target))


@cli.command()
@click.argument("file")
@click.pass_context
@runner_errors
def run(ctx: click.Context, file: str) -> None:
    """Run one test script."""
    config: RunnerConfig = ctx.obj
    path = Path(file)
    if not path.is_absolute() and path.is_file():
        path = path.resolve()
    unit = resolve_test_file(path, config.scripts_dir)
    ctx.exit(execute_units(config, [unit], probe_target=ctx.meta["check_target"]))


@cli.command("test")
@click.argument("test_type", type=click.Choice(sorted(TEMPLATES), case_sensitive=False))
@click.option("--vus", type=click.IntRange(min=1), help="Number of virtual users.")
@click.option("--duration", help="Test duration (e.g. 30s, 2m).")
@click.pass_context
@runner_errors
def test_command(
    ctx: click.Context, test_type: str, vus: Optional[int], duration: Optional[str]
) -> None:
    """Run a built-in scenario (smoke, load, stress, spike, soak)."""
    config: RunnerConfig = ctx.obj
    template = get_template(test_type)
    log.info("Running built-in %s test: %s", template.name, template.description)
    ctx.exit(execute_units(
        config,
        [template.to_unit()],
        extra_args=engine_overrides(vus=vus, duration=duration),
        probe_target=ctx.meta["check_target"],
    ))


@cli.command()
@click.argument("json_file", type=click.Path(path_type=Path))
@click.pass_obj
def report(config: RunnerConfig, json_file: Path) -> None:
    """Describe a JSON results file and its HTML report."""
    try:
        summary = summarize_results_file(json_file, config.reports_dir)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Results file: {summary.path}")
    if summary.test_name:
        click.echo(f"Test: {summary.test_name}")
        click.echo(f"Timestamp: {summary.timestamp}")
    if summary.html_report:
        click.echo(f"HTML report: {summary.html_report}")
    else:
        click.echo("HTML report: not found")

    click.echo(f"Samples: {summary.total_samples}")
    for metric, count in sorted(summary.samples.items()):
        click.echo(f"  {metric}: {count}")
    if summary.invalid_lines:
        click.echo(f"Unreadable lines: {summary.invalid_lines}")


@cli.command()
@click.argument("config_file", type=click.Path(path_type=Path))
@click.pass_context
@runner_errors
def batch(ctx: click.Context, config_file: Path) -> None:
    """Run the tests listed in a batch configuration file."""
    config: RunnerConfig = ctx.obj
    batch_config = parse_batch_file(config_file, scripts_dir=config.scripts_dir)

    validation = validate_batch(batch_config)
    for warning in validation.warnings:
        log.warning("%s: %s", warning.path, warning.message)
    if not validation.valid:
        for error in validation.errors:
            click.echo(f"  {error.path}: {error.message}", err=True)
        raise click.ClickException(f"Invalid batch config {config_file}: {validation}")

    config = replace(
        config,
        project_name=batch_config.project or config.project_name,
        environment_name=batch_config.environment or config.environment_name,
        base_url=batch_config.base_url or config.base_url,
    )
    log.info("Batch %s: %d test(s)", config_file, batch_config.total_tests)
    ctx.exit(execute_units(
        config, batch_config.units(), probe_target=ctx.meta["check_target"]
    ))


@cli.command()
@click.argument(
    "target", type=click.Choice(["reports", "output", "all", "stats"])
)
@click.option(
    "--max-age",
    type=click.IntRange(min=0),
    help="Maximum age in days (overrides MAX_*_AGE_DAYS).",
)
@click.pass_context
def cleanup(ctx: click.Context, target: str, max_age: Optional[int]) -> None:
    """Remove old artifacts, or report their ages with 'stats'."""
    config: RunnerConfig = ctx.obj
    policies = {
        "reports": RetentionPolicy(
            directory=config.reports_dir,
            max_age_days=config.max_reports_age_days if max_age is None else max_age,
        ),
        "output": RetentionPolicy(
            directory=config.output_dir,
            max_age_days=config.max_output_age_days if max_age is None else max_age,
        ),
    }
    manager = RetentionManager()

    if target == "stats":
        failures = 0
        for policy in policies.values():
            stats = manager.stats(policy)
            for error in stats.errors:
                click.echo(f"  {error}", err=True)
            failures += len(stats.errors)
            click.echo(f"{policy.directory} (max age {policy.max_age_days} days)")
            for label, bucket in stats.buckets.items():
                click.echo(f"  {label}: {bucket.count} file(s), {format_size(bucket.size)}")
            click.echo(
                f"  total: {stats.total_count} file(s), {format_size(stats.total_size)}"
            )
            click.echo(
                f"  expired: {stats.expired_count} file(s), {format_size(stats.expired_size)}"
            )
        ctx.exit(1 if failures else 0)

    selected = list(policies) if target == "all" else [target]
    failures = 0
    for name in selected:
        result = manager.sweep(policies[name])
        click.echo(
            f"{name}: removed {result.removed_count} file(s), "
            f"{format_size(result.bytes_removed)} from {result.policy.directory}"
        )
        for error in result.errors:
            click.echo(f"  {error}", err=True)
        failures += len(result.errors)

    ctx.exit(1 if failures else 0)


@cli.command()
@click.option("--retries", type=click.IntRange(min=0), default=0, show_default=True,
              help="Probe retries while waiting for the dashboard.")
@click.pass_context
def dashboard(ctx: click.Context, retries: int) -> None:
    """Show the web dashboard address and whether it is up."""
    config: RunnerConfig = ctx.obj
    if not config.dashboard_enabled:
        click.echo("Web dashboard is disabled (K6_WEB_DASHBOARD=false)")
        ctx.exit(0)

    click.echo(f"Web Dashboard: {config.dashboard_url}")
    with HttpProbe(retry_policy=RetryPolicy(max_retries=retries)) as probe:
        result = probe.check(config.dashboard_url)

    if result.reachable:
        click.echo(f"Dashboard is running (HTTP {result.status_code})")
        ctx.exit(0)
    click.echo("Dashboard is not running. It is served while a test runs.")
    ctx.exit(1)


@cli.command()
@click.argument("file")
@click.pass_context
@runner_errors
def validate(ctx: click.Context, file: str) -> None:
    """Check a script with the engine without running it."""
    config: RunnerConfig = ctx.obj
    path = Path(file)
    if not path.is_absolute() and path.is_file():
        path = path.resolve()
    unit = resolve_test_file(path, config.scripts_dir)

    engine = K6Engine(config.k6_binary)
    engine.ensure_available()
    proc = engine.inspect(unit.path)

    if proc.returncode != 0:
        click.echo(f"❌ {unit.path} is invalid", err=True)
        click.echo((proc.stderr or proc.stdout).strip(), err=True)
        ctx.exit(1)

    try:
        content = unit.read_content()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read script {unit.path}: {e}") from e

    click.echo(f"✅ {unit.path} is valid")
    if has_summary_hook(content):
        click.echo("Script defines handleSummary; no hook will be injected")
    else:
        click.echo("handleSummary hook will be injected at run time")
    ctx.exit(0)


@cli.command("help")
def help_command() -> None:
    """Show usage help."""
    click.echo(HELP_TEXT)


@cli.command()
@click.pass_obj
def version(config: RunnerConfig) -> None:
    """Show runner and k6 versions."""
    click.echo(f"k6-runner {__version__}")
    engine = K6Engine(config.k6_binary)
    try:
        click.echo(engine.version())
    except OSError:
        click.echo(f"k6: not found ({config.k6_binary})")


def _handle_sigterm(signum, frame) -> None:
    raise ShutdownRequested(signum)


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    signal.signal(signal.SIGTERM, _handle_sigterm)

    try:
        exit_code = cli.main(prog_name="k6-runner", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        log.info("Interrupted, temporary scripts removed")
        sys.exit(130)
    except ShutdownRequested as e:
        log.info("Received shutdown signal, temporary scripts removed")
        sys.exit(128 + e.signum)
    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
