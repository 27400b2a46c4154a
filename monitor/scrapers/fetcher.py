from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests

from ..logging_setup import LOGGER_NAME
from ..scraper_observability import StepTimer, log_event

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_TIMEOUT_S = 12.0
DEFAULT_USER_AGENT = "NTXGD-Monitor/2.0"
ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

BACKOFF_BASE_S = 1.0
BACKOFF_CAP_S = 5.0


class FetchError(Exception):
    """Raised once a page could not be retrieved; wraps the last requests error."""

    def __init__(self, message: str, status: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.status = status
        self.cause = cause


def is_retryable_status(status: Optional[int]) -> bool:
    return status is not None and (status == 429 or 500 <= status < 600)


def backoff_delay(attempt: int, base: float = BACKOFF_BASE_S, cap: float = BACKOFF_CAP_S) -> float:
    """Delay before retry number ``attempt + 1`` (attempt counts from 0)."""
    return min(base * (2 ** attempt), cap)


class Fetcher:
    """GET a page with a timeout, a descriptive User-Agent and bounded retries.

    Only HTTP 429 and 5xx answers are retried. Anything else (other 4xx,
    DNS/connection errors, timeouts, malformed URLs) fails on the spot.
    """

    def __init__(
        self,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_attempts: int = 2,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout_s = timeout_s
        self.max_attempts = max(1, max_attempts)
        self.user_agent = user_agent
        self.session = session or requests.Session()
        self.sleep = sleep

    def _get(self, url: str) -> requests.Response:
        response = self.session.get(
            url,
            timeout=self.timeout_s,
            headers={"User-Agent": self.user_agent, "Accept": ACCEPT_HTML},
        )
        response.raise_for_status()
        return response

    def fetch(self, url: str, max_attempts: Optional[int] = None) -> requests.Response:
        tries = max(1, max_attempts if max_attempts is not None else self.max_attempts)
        last_error: Optional[requests.RequestException] = None
        last_status: Optional[int] = None

        for attempt in range(tries):
            timer = StepTimer()
            try:
                response = self._get(url)
            except requests.RequestException as exc:
                last_error = exc
                last_status = exc.response.status_code if exc.response is not None else None
                log_event(
                    "FETCH",
                    url=url,
                    attempt=attempt + 1,
                    status=last_status,
                    latency_ms=timer.elapsed_ms(),
                    error=type(exc).__name__,
                )
                if not is_retryable_status(last_status) or attempt == tries - 1:
                    break
                delay = backoff_delay(attempt)
                logger.warning("Retrying %s in %.1fs after HTTP %s", url, delay, last_status)
                self.sleep(delay)
                continue

            log_event(
                "FETCH",
                url=url,
                attempt=attempt + 1,
                status=response.status_code,
                bytes=len(response.content),
                latency_ms=timer.elapsed_ms(),
            )
            return response

        raise FetchError(str(last_error), status=last_status, cause=last_error) from last_error
