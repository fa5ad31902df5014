"""Batch configuration validator.

Validates parsed BatchConfig objects before any run starts.
"""

import re
from urllib.parse import urlparse

from ..config import TEST_SCRIPT_EXTENSION
from .schema import BatchConfig, ValidationError, ValidationResult

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def validate_batch(config: BatchConfig) -> ValidationResult:
    """Validate a parsed BatchConfig.

    Checks:
    - baseUrl is an http(s) URL when given
    - entry names are unique and safe to use in file names
    - entry scripts have the test script extension and exist

    Args:
        config: Parsed BatchConfig to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []

    if config.base_url is not None:
        parsed = urlparse(config.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(ValidationError(
                path="baseUrl",
                message=f"Invalid baseUrl '{config.base_url}'. Expected an http(s) URL.",
            ))

    if not config.tests:
        errors.append(ValidationError(
            path="tests",
            message="No tests defined.",
        ))

    seen: set[str] = set()
    for i, entry in enumerate(config.tests):
        path = f"tests[{i}]"

        if not _NAME_PATTERN.match(entry.name):
            errors.append(ValidationError(
                path=f"{path}.name",
                message=(
                    f"Invalid name '{entry.name}'. Use letters, digits, '.', '_' or '-'."
                ),
            ))
        elif entry.name in seen:
            warnings.append(ValidationError(
                path=f"{path}.name",
                message=f"Duplicate name '{entry.name}'. Runs get distinct timestamps.",
                severity="warning",
            ))
        seen.add(entry.name)

        if not entry.script.endswith(TEST_SCRIPT_EXTENSION):
            errors.append(ValidationError(
                path=f"{path}.script",
                message=f"Script must be a {TEST_SCRIPT_EXTENSION} file: {entry.script}",
            ))
        elif entry.resolved_path is None:
            errors.append(ValidationError(
                path=f"{path}.script",
                message=f"Script not found: {entry.script}",
            ))

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )
