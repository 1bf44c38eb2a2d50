"""
Retry helpers for outbound calls.

Two policies are used by the bot:
- transient HTTP failures against Graph and SharePoint (exponential waits)
- bot message sends that hit throttling (randomized exponential jitter)

Both take a RetrySettings instance so callers and tests control the bounds.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

import aiohttp
from msrest.exceptions import HttpOperationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

from expert_finder.config import RetrySettings

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


@dataclass
class HttpResult:
    """Buffered HTTP response returned from send_http_request."""
    status: int
    reason: Optional[str]
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.text) if self.text else None


def _is_transient(result: HttpResult) -> bool:
    return result.status in TRANSIENT_STATUS_CODES


def _last_result(retry_state):
    # Attempts exhausted: hand back the final response, or re-raise its error
    return retry_state.outcome.result()


async def _request(session: aiohttp.ClientSession, method: str, url: str, **kwargs) -> HttpResult:
    async with session.request(method, url, **kwargs) as response:
        text = await response.text()
        return HttpResult(status=response.status, reason=response.reason, text=text)


async def send_http_request(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    retry_settings: RetrySettings,
    **kwargs,
) -> HttpResult:
    """
    Perform one HTTP call, retrying connection errors and transient statuses.

    The response body is read inside the retry loop so the connection is
    released before the next attempt.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(retry_settings.max_attempts),
        wait=wait_exponential(
            multiplier=retry_settings.backoff_base_seconds,
            max=retry_settings.max_backoff_seconds,
        ),
        retry=(
            retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError))
            | retry_if_result(_is_transient)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        retry_error_callback=_last_result,
    )
    return await retrying(_request, session, method, url, **kwargs)


async def send_with_retry(
    send: Callable[[], Awaitable[Any]],
    retry_settings: RetrySettings,
    retry_on: Tuple[Type[BaseException], ...] = (HttpOperationError,),
) -> Any:
    """Run a bot send operation under the message-send backoff policy."""
    retrying = AsyncRetrying(
        stop=stop_after_attempt(retry_settings.max_attempts),
        wait=wait_random_exponential(
            multiplier=retry_settings.backoff_base_seconds,
            max=retry_settings.max_backoff_seconds,
        ),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return await retrying(send)
