"""Batch module - batch configuration files."""

from .schema import (
    BatchConfig,
    BatchEntry,
    ValidationError,
    ValidationResult,
)
from .parser import parse_batch_data, parse_batch_file
from .validator import validate_batch

__all__ = [
    "BatchConfig",
    "BatchEntry",
    "ValidationError",
    "ValidationResult",
    "parse_batch_data",
    "parse_batch_file",
    "validate_batch",
]
