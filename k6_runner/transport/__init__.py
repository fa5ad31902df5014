"""Transport module - HTTP probes."""

from .http_client import HttpProbe, ProbeResult, RetryPolicy

__all__ = [
    "HttpProbe",
    "ProbeResult",
    "RetryPolicy",
]
