"""
Resilient request layer: per-attempt timeouts, exponential backoff and a
pluggable retry predicate, shared by every outbound call.

The layer never synthesizes success. When retries run out it hands back the
last response it saw (even a non-OK one) and callers inspect ``ok`` /
``status_code`` themselves. Only when no response was ever received does it
raise, wrapping the last transport error in ``TransientIOError``.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import requests

from domain.errors import TransientIOError

logger = logging.getLogger(__name__)
_session = requests.Session()

RetryPredicate = Callable[[Optional[requests.Response], Optional[BaseException]], bool]


def default_retry_predicate(
    response: Optional[requests.Response], error: Optional[BaseException]
) -> bool:
    """Retry on transport errors, 5xx and 429."""
    if error is not None:
        return True
    if response is not None:
        return response.status_code >= 500 or response.status_code == 429
    return False


@dataclass
class RetryConfig:
    max_retries: int = 3
    initial_delay_ms: float = 1000
    max_delay_ms: float = 16000
    timeout_ms: float = 10000
    retry_predicate: RetryPredicate = field(default=default_retry_predicate)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")


def backoff_delay_ms(
    attempt: int,
    config: RetryConfig,
    response: Optional[requests.Response] = None,
) -> float:
    """
    Delay before retrying after 0-indexed ``attempt``.

    min(initial * 2^attempt, max), doubled once more when rate limited.
    """
    delay = min(config.initial_delay_ms * (2 ** attempt), config.max_delay_ms)
    if response is not None and response.status_code == 429:
        delay *= 2
    return delay


def execute(
    request: Callable[[float], requests.Response],
    config: Optional[RetryConfig] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Run ``request`` (called with the per-attempt timeout in seconds) until it
    succeeds, the predicate declines a retry, or the budget is spent.
    """
    cfg = config or RetryConfig()
    timeout_sec = cfg.timeout_ms / 1000.0
    last_response: Optional[requests.Response] = None
    last_error: Optional[BaseException] = None

    for attempt in range(cfg.max_retries + 1):
        try:
            response = request(timeout_sec)
        except requests.RequestException as exc:
            last_error = exc
            if isinstance(exc, requests.Timeout):
                logger.warning(
                    "Request timed out after %sms (attempt %d/%d)",
                    cfg.timeout_ms,
                    attempt + 1,
                    cfg.max_retries + 1,
                )
            else:
                logger.warning(
                    "Request failed with error: %s (attempt %d/%d)",
                    exc,
                    attempt + 1,
                    cfg.max_retries + 1,
                )
            if attempt < cfg.max_retries and cfg.retry_predicate(None, exc):
                sleep(backoff_delay_ms(attempt, cfg) / 1000.0)
                continue
            if last_response is not None:
                return last_response
            raise TransientIOError(f"Request failed after {attempt + 1} attempt(s): {exc}") from exc

        if not response.ok and attempt < cfg.max_retries and cfg.retry_predicate(response, None):
            if last_response is not None:
                last_response.close()
            last_response = response
            delay = backoff_delay_ms(attempt, cfg, response)
            logger.warning(
                "Request failed with status %s, retrying in %.0fms (attempt %d/%d)",
                response.status_code,
                delay,
                attempt + 1,
                cfg.max_retries + 1,
            )
            sleep(delay / 1000.0)
            continue

        return response

    if last_response is not None:  # pragma: no cover
        return last_response
    raise TransientIOError(f"Request failed after maximum retry attempts: {last_error}")


def fetch_with_retry(
    url: str,
    *,
    method: str = "GET",
    params: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
    json: Any = None,
    config: Optional[RetryConfig] = None,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Issue an HTTP request through :func:`execute` using a shared session.

    The per-attempt timeout covers the whole exchange, body included. The body
    is streamed and the deadline is checked between reads, so a server that
    drips bytes still trips ``requests.Timeout`` and stays on the retry path.
    """
    http = session or _session

    def _send(timeout: float) -> requests.Response:
        deadline = time.monotonic() + timeout
        response = http.request(
            method, url, params=params, headers=headers, json=json, timeout=timeout, stream=True
        )
        try:
            _read_body(response, deadline, timeout)
        except requests.RequestException:
            response.close()
            raise
        return response

    return execute(_send, config, sleep=sleep)


def _read_body(response: requests.Response, deadline: float, timeout: float) -> None:
    """Load a streamed body into ``response.content`` or raise once past ``deadline``."""
    if not isinstance(response, requests.Response):
        return
    chunks = []
    # One byte per read: a larger read blocks until the whole chunk arrives.
    for chunk in response.iter_content(chunk_size=1):
        if time.monotonic() > deadline:
            raise requests.Timeout(f"Response not received within {timeout}s")
        chunks.append(chunk)
    if time.monotonic() > deadline:
        raise requests.Timeout(f"Response not received within {timeout}s")
    response._content = b"".join(chunks)
    response._content_consumed = True
    response.close()
