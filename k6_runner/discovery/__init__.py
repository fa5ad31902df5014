"""Discovery module - test script selection."""

from .scanner import (
    DiscoveryResult,
    SelectionMode,
    TestUnit,
    discover_tests,
    resolve_test_file,
    scan_directory,
)

__all__ = [
    "DiscoveryResult",
    "SelectionMode",
    "TestUnit",
    "discover_tests",
    "resolve_test_file",
    "scan_directory",
]
