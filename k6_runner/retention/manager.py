"""Age-based retention of artifact directories.

A sweep deletes regular files directly inside a directory whose age
exceeds the policy threshold. Stats mode runs the same scan without
deleting anything. Deletion is best-effort per file.
"""

import logging
import stat
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

from ..errors import RetentionError

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# (label, lower bound in days inclusive, upper bound exclusive)
AGE_BUCKETS: tuple[tuple[str, float, Optional[float]], ...] = (
    ("<1 day", 0, 1),
    ("1-7 days", 1, 7),
    ("7-30 days", 7, 30),
    (">30 days", 30, None),
)


def file_age_days(now: float, mtime: float) -> float:
    """Age in days of a file last modified at ``mtime``."""
    return max(0.0, now - mtime) / SECONDS_PER_DAY


def is_expired(now: float, mtime: float, max_age_days: int) -> bool:
    """Whether a file is older than ``max_age_days``."""
    return file_age_days(now, mtime) > max_age_days


def age_bucket(age_days: float) -> str:
    """Label of the age bucket ``age_days`` falls into."""
    for label, lower, upper in AGE_BUCKETS:
        if age_days >= lower and (upper is None or age_days < upper):
            return label
    return AGE_BUCKETS[-1][0]


@dataclass(frozen=True)
class RetentionPolicy:
    """Where to sweep and how old files may get."""
    directory: Path
    max_age_days: int


@dataclass(frozen=True)
class FileEntry:
    """A file seen during a scan."""
    path: Path
    size: int
    mtime: float
    age_days: float


@dataclass
class SweepResult:
    """What a sweep removed and what it could not."""
    policy: RetentionPolicy
    removed: list[FileEntry] = field(default_factory=list)
    errors: list[RetentionError] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def bytes_removed(self) -> int:
        return sum(e.size for e in self.removed)


@dataclass
class BucketStats:
    """Count and size of files in one age bucket."""
    count: int = 0
    size: int = 0


@dataclass
class RetentionStats:
    """Report of a directory's files grouped by age."""
    policy: RetentionPolicy
    buckets: dict[str, BucketStats] = field(
        default_factory=lambda: {label: BucketStats() for label, _, _ in AGE_BUCKETS}
    )
    expired_count: int = 0
    expired_size: int = 0
    errors: list[RetentionError] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return sum(b.count for b in self.buckets.values())

    @property
    def total_size(self) -> int:
        return sum(b.size for b in self.buckets.values())


class RetentionManager:
    """Sweeps artifact directories. Holds no state between calls."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """Initialize retention manager.

        Args:
            clock: Returns the current time as epoch seconds.
                Defaults to ``time.time``.
        """
        self.clock = clock or time.time

    def scan(
        self,
        directory: Path,
        now: float,
        errors: Optional[list[RetentionError]] = None,
    ) -> Iterator[FileEntry]:
        """Yield the regular files directly inside ``directory``.

        A directory that cannot be listed yields nothing. The failure is
        appended to ``errors`` when given, and raised otherwise.
        """
        directory = Path(directory)
        if not directory.is_dir():
            log.info("Directory does not exist, nothing to scan: %s", directory)
            return

        try:
            paths = sorted(directory.iterdir())
        except OSError as e:
            error = RetentionError(directory, e, action="list")
            if errors is None:
                raise error from e
            log.warning("%s", error)
            errors.append(error)
            return

        for path in paths:
            try:
                st = path.lstat()
            except FileNotFoundError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            yield FileEntry(
                path=path,
                size=st.st_size,
                mtime=st.st_mtime,
                age_days=file_age_days(now, st.st_mtime),
            )

    def sweep(self, policy: RetentionPolicy) -> SweepResult:
        """Delete files older than the policy allows.

        Args:
            policy: Directory and age threshold.

        Returns:
            SweepResult with removed files and per-file errors.
        """
        result = SweepResult(policy=policy)
        log.info(
            "Cleaning files older than %d days in %s",
            policy.max_age_days,
            policy.directory,
        )

        now = self.clock()
        for entry in self.scan(policy.directory, now, result.errors):
            if not is_expired(now, entry.mtime, policy.max_age_days):
                continue
            try:
                entry.path.unlink()
            except OSError as e:
                error = RetentionError(entry.path, e)
                log.warning("%s", error)
                result.errors.append(error)
                continue
            log.debug("Removed %s (%.1f days old)", entry.path, entry.age_days)
            result.removed.append(entry)

        log.info(
            "Removed %d file(s), %d bytes from %s",
            result.removed_count,
            result.bytes_removed,
            policy.directory,
        )
        return result

    def stats(self, policy: RetentionPolicy) -> RetentionStats:
        """Group files by age without deleting anything."""
        report = RetentionStats(policy=policy)
        now = self.clock()
        for entry in self.scan(policy.directory, now, report.errors):
            bucket = report.buckets[age_bucket(entry.age_days)]
            bucket.count += 1
            bucket.size += entry.size
            if is_expired(now, entry.mtime, policy.max_age_days):
                report.expired_count += 1
                report.expired_size += entry.size
        return report


def format_size(size: int) -> str:
    """Human readable byte count."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"
