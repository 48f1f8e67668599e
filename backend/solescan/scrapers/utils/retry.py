"""Retry policies with exponential backoff for outbound HTTP requests."""

import logging

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from solescan.core.exceptions import RateLimitError


logger = structlog.get_logger(__name__)

# Throttling is retried after the rate limiter's cooldown; transport
# errors are retried directly. HTTP status errors are final.
RETRYABLE_HTTP_ERRORS = (RateLimitError, httpx.TransportError)


def http_retrying(max_attempts: int = 3) -> AsyncRetrying:
    """Fresh retry controller for one request.

    Usage::

        async for attempt in http_retrying(3):
            with attempt:
                ...
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception_type(RETRYABLE_HTTP_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
