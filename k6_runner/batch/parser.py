"""Batch configuration parser.

Reads YAML (or JSON, which YAML accepts) batch files into BatchConfig
objects.
"""

from pathlib import Path
from typing import Optional, Union

import yaml

from ..errors import BatchConfigError
from .schema import BatchConfig, BatchEntry

BATCH_EXTENSIONS = (".yaml", ".yml", ".json")


def parse_batch_file(
    file_path: Union[str, Path],
    scripts_dir: Optional[Path] = None,
) -> BatchConfig:
    """Parse a batch configuration file.

    Args:
        file_path: Path to the batch file.
        scripts_dir: Fallback directory for entry scripts.

    Returns:
        Parsed BatchConfig with script paths resolved where they exist.

    Raises:
        BatchConfigError: If the file is missing, empty or malformed.
    """
    file_path = Path(file_path)

    if not file_path.is_file():
        raise BatchConfigError(f"Batch config file not found: {file_path}")

    if file_path.suffix not in BATCH_EXTENSIONS:
        raise BatchConfigError(
            f"Expected one of {', '.join(BATCH_EXTENSIONS)}, got: {file_path.suffix}"
        )

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise BatchConfigError(f"Malformed batch config {file_path}: {e}") from e

    if data is None:
        raise BatchConfigError(f"Empty batch config file: {file_path}")

    config = parse_batch_data(data, source=file_path)
    search_dirs = [file_path.parent]
    if scripts_dir is not None:
        search_dirs.append(scripts_dir)
    for entry in config.tests:
        entry.resolved_path = resolve_script(entry.script, search_dirs)
    return config


def parse_batch_data(data: dict, source: Union[str, Path] = "<inline>") -> BatchConfig:
    """Parse a batch config from an already loaded mapping.

    Raises:
        BatchConfigError: If required fields are missing or malformed.
    """
    if not isinstance(data, dict):
        raise BatchConfigError(
            f"Batch config must be a mapping, got {type(data).__name__}"
        )

    tests_data = data.get("tests", [])
    if not isinstance(tests_data, list):
        raise BatchConfigError(f"'tests' must be a list in {source}")

    tests = []
    for i, entry_data in enumerate(tests_data):
        if not isinstance(entry_data, dict):
            raise BatchConfigError(f"tests[{i}] must be a mapping in {source}")
        _require_fields(entry_data, ["name", "script"], f"tests[{i}]", source)

        tags = entry_data.get("tags") or {}
        if not isinstance(tags, dict):
            raise BatchConfigError(f"tests[{i}].tags must be a mapping in {source}")

        tests.append(BatchEntry(
            name=str(entry_data["name"]),
            script=str(entry_data["script"]),
            tags={str(k): str(v) for k, v in tags.items()},
        ))

    return BatchConfig(
        source=Path(source),
        project=_optional_str(data.get("project")),
        environment=_optional_str(data.get("environment")),
        base_url=_optional_str(data.get("baseUrl")),
        tests=tests,
    )


def resolve_script(script: str, search_dirs: list[Path]) -> Optional[Path]:
    """Find ``script`` as given or in the search directories."""
    path = Path(script)
    if path.is_absolute():
        return path if path.is_file() else None
    for directory in search_dirs:
        candidate = directory / path
        if candidate.is_file():
            return candidate
    return None


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _require_fields(
    data: dict, fields: list[str], context: str, source: Union[str, Path]
) -> None:
    """Check that required fields exist in a dictionary."""
    for field_name in fields:
        if field_name not in data:
            raise BatchConfigError(
                f"Missing required field '{field_name}' in {context} ({source})"
            )
