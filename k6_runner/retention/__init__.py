"""Retention module - artifact cleanup."""

from .manager import (
    AGE_BUCKETS,
    BucketStats,
    FileEntry,
    RetentionManager,
    RetentionPolicy,
    RetentionStats,
    SweepResult,
    age_bucket,
    file_age_days,
    format_size,
    is_expired,
)

__all__ = [
    "AGE_BUCKETS",
    "BucketStats",
    "FileEntry",
    "RetentionManager",
    "RetentionPolicy",
    "RetentionStats",
    "SweepResult",
    "age_bucket",
    "file_age_days",
    "format_size",
    "is_expired",
]
