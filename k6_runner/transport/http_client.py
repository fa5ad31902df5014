"""HTTP reachability probes.

Used before a batch to check that the target answers, and by the
``dashboard`` command to check whether the engine's web dashboard is up.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff between probe attempts."""
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0

    def get_delay(self, attempt: int) -> float:
        """Delay before retry ``attempt`` (0 = first retry), capped at max_delay."""
        return min(self.initial_delay * self.backoff_factor ** attempt, self.max_delay)


@dataclass
class ProbeResult:
    """Outcome of probing one URL."""
    url: str
    reachable: bool
    status_code: Optional[int] = None
    attempts: int = 0
    error: Optional[str] = None


class HttpProbe:
    """Checks whether a URL answers with a non-5xx status."""

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        request_timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize HTTP probe.

        Args:
            retry_policy: Retry policy for failed attempts.
            request_timeout: Per-request timeout in seconds.
            session: Session to reuse. A new one is created by default.
            sleep: Delay function between attempts.
        """
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = request_timeout
        self._session = session or requests.Session()
        self._sleep = sleep

    def check(self, url: str) -> ProbeResult:
        """Probe ``url``, retrying connection errors, timeouts and 5xx.

        Args:
            url: URL to GET.

        Returns:
            ProbeResult. Never raises for network errors.
        """
        result = ProbeResult(url=url, reachable=False)

        for attempt in range(self.retry_policy.max_retries + 1):
            result.attempts = attempt + 1
            try:
                response = self._session.get(url, timeout=self.request_timeout)
                result.status_code = response.status_code
                if response.status_code < 500:
                    result.reachable = True
                    result.error = None
                    return result
                result.error = f"HTTP {response.status_code}"
            except (requests.ConnectionError, requests.Timeout) as e:
                result.error = str(e)
            except requests.RequestException as e:
                # Malformed URL or unsupported scheme; retrying cannot help.
                result.error = str(e)
                break

            if attempt < self.retry_policy.max_retries:
                delay = self.retry_policy.get_delay(attempt)
                log.debug("Probe of %s failed (%s), retrying in %.1fs", url, result.error, delay)
                self._sleep(delay)

        log.warning("%s is not reachable: %s", url, result.error)
        return result

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
