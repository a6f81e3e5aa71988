"""Retry handling for throttled AI provider calls.

Only throttling errors are retried. Everything else is raised on the first
attempt, since most failures are not transient. When retries run out the
wrapper returns None so batch callers can skip the one item and keep going.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar
import asyncio
import logging
import re

import openai

from repolens.errors import RepolensError

logger = logging.getLogger(__name__)

T = TypeVar("T")

THROTTLING_MARKERS = (
    "429",
    "quota",
    "too many requests",
    "rate limit",
    "rate_limit",
    "resource_exhausted",
)

# compatibility shim for providers that only put the delay in the message
_RETRY_DELAY_PATTERNS = (
    re.compile(r"retry in ([\d.]+)\s*s", re.IGNORECASE),
    re.compile(r"retry after ([\d.]+)", re.IGNORECASE),
    re.compile(r"retrydelay['\"]?\s*[:=]\s*['\"]?([\d.]+)s", re.IGNORECASE),
)


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_throttling_error(exc: BaseException) -> bool:
    # domain errors are already classified; their messages are not scraped
    if isinstance(exc, RepolensError):
        return False
    if isinstance(exc, openai.RateLimitError):
        return True
    if _status_code(exc) == 429:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in THROTTLING_MARKERS)


def extract_retry_delay(exc: BaseException) -> Optional[float]:
    """Provider-suggested delay in seconds, if the error carries one.

    Structured fields (``retry_after`` attributes, ``Retry-After`` headers)
    are preferred. Scraping the message text is a fallback for clients that
    only report the delay in prose.
    """
    retry_after = getattr(exc, "retry_after", None)
    if isinstance(retry_after, (int, float)):
        return float(retry_after)

    headers = getattr(getattr(exc, "response", None), "headers", None)
    if headers is not None:
        try:
            retry_after_ms = headers.get("retry-after-ms")
            if retry_after_ms is not None:
                return float(retry_after_ms) / 1000
            retry_after = headers.get("retry-after")
            if retry_after is not None:
                return float(retry_after)
        except (TypeError, ValueError):
            # http-date form of Retry-After; fall through to the text
            pass

    message = str(exc)
    for pattern in _RETRY_DELAY_PATTERNS:
        match = pattern.search(message)
        if match:
            try:
                return float(match.group(1))
            except ValueError:
                continue
    return None


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    context: str = "",
    fallback_delay: float = 60.0,
    max_delay: float = 300.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
) -> Optional[T]:
    """Run ``operation``, retrying on throttling errors.

    Returns the operation's result, or None once ``max_attempts`` throttled
    attempts have been made. Non-throttling errors propagate immediately.
    """
    label = context or getattr(operation, "__name__", "operation")
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_throttling_error(e):
                raise

            if attempt == max_attempts:
                logger.error(f"{label}: still rate limited after {max_attempts} attempts, giving up")
                return None

            delay = extract_retry_delay(e)
            if delay is None:
                delay = fallback_delay * (2 ** (attempt - 1))
            delay = min(delay, max_delay)

            logger.warning(
                f"{label}: rate limited, waiting {delay:.1f}s "
                f"(attempt {attempt}/{max_attempts})")
            await sleep(delay)
    return None


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    fallback_delay: float = 60.0
    max_delay: float = 300.0
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_config(cls, config, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            fallback_delay=config.fallback_delay,
            max_delay=config.max_delay,
            sleep=sleep
        )

    async def run(self, operation: Callable[[], Awaitable[T]], context: str = "") -> Optional[T]:
        return await with_retry(
            operation,
            max_attempts=self.max_attempts,
            context=context,
            fallback_delay=self.fallback_delay,
            max_delay=self.max_delay,
            sleep=self.sleep
        )
