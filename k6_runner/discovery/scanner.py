"""Test unit discovery.

Resolves the ordered list of test scripts to run from one of three
selection modes:

1. ``TEST_FILE`` set: run that single file (relative to the scripts dir).
2. ``TEST_FOLDER`` set: run every script directly inside the folder.
3. Neither set: run every script directly inside the scripts dir.

An empty default scan is not an error; the caller shows usage guidance.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Union

from ..config import TEST_SCRIPT_EXTENSION, RunnerConfig
from ..errors import (
    ConfigurationError,
    EmptySelection,
    InvalidSelector,
    TestFileNotFound,
    TestFolderNotFound,
)


class SelectionMode(str, Enum):
    """How the test units were selected."""
    EXPLICIT_FILE = "file"
    EXPLICIT_FOLDER = "folder"
    DEFAULT_SCAN = "default"


@dataclass(frozen=True)
class TestUnit:
    """One test script to execute."""

    __test__ = False

    path: Path
    name: str
    tags: Mapping[str, str] = field(default_factory=dict, compare=False)
    content: Optional[str] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "TestUnit":
        """Create a unit named after the file stem."""
        path = Path(path)
        return cls(path=path, name=path.stem)

    def read_content(self) -> str:
        """Return the script text (inline content wins over the file)."""
        if self.content is not None:
            return self.content
        return self.path.read_text(encoding="utf-8")


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of discovery."""
    mode: SelectionMode
    source: Path
    units: tuple[TestUnit, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.units) == 0


def discover_tests(config: RunnerConfig) -> DiscoveryResult:
    """Resolve the test units selected by the configuration.

    Args:
        config: Runner configuration.

    Returns:
        DiscoveryResult. Only the default scan may return no units.

    Raises:
        ConfigurationError: If a selector cannot be resolved.
        EmptySelection: If an explicit folder holds no test scripts.
    """
    if config.test_file:
        unit = resolve_test_file(config.test_file, config.scripts_dir)
        return DiscoveryResult(
            mode=SelectionMode.EXPLICIT_FILE,
            source=unit.path,
            units=(unit,),
        )

    if config.test_folder is not None:
        folder = config.test_folder
        if not folder.is_dir():
            raise TestFolderNotFound(f"Test folder not found: {folder}")
        units = scan_directory(folder)
        if not units:
            raise EmptySelection(
                f"No {TEST_SCRIPT_EXTENSION} files found in folder: {folder}"
            )
        return DiscoveryResult(
            mode=SelectionMode.EXPLICIT_FOLDER, source=folder, units=units
        )

    scripts_dir = config.scripts_dir
    if not scripts_dir.is_dir():
        raise ConfigurationError(f"Scripts directory not found: {scripts_dir}")
    return DiscoveryResult(
        mode=SelectionMode.DEFAULT_SCAN,
        source=scripts_dir,
        units=scan_directory(scripts_dir),
    )


def resolve_test_file(selector: Union[str, Path], scripts_dir: Path) -> TestUnit:
    """Resolve a single test file selector.

    Relative selectors are looked up in ``scripts_dir``; absolute ones are
    used as given.

    Raises:
        InvalidSelector: If the selector lacks the test script extension.
        TestFileNotFound: If the file does not exist.
    """
    selector_path = Path(selector)
    if selector_path.suffix != TEST_SCRIPT_EXTENSION:
        raise InvalidSelector(
            f"Test file must be a {TEST_SCRIPT_EXTENSION} file: {selector}"
        )

    full_path = selector_path if selector_path.is_absolute() else scripts_dir / selector_path
    if not full_path.is_file():
        raise TestFileNotFound(f"Test file not found: {full_path}")

    return TestUnit.from_path(full_path)


def scan_directory(directory: Path) -> tuple[TestUnit, ...]:
    """List test scripts directly inside ``directory`` in lexical order."""
    seen: set[Path] = set()
    units = []
    for path in sorted(directory.iterdir(), key=lambda p: str(p)):
        if path.suffix != TEST_SCRIPT_EXTENSION or not path.is_file():
            continue
        key = path.resolve()
        if key in seen:
            continue
        seen.add(key)
        units.append(TestUnit.from_path(path))
    return tuple(units)
