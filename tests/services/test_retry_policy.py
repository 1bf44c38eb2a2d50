"""
Tests for the outbound retry policies.
"""
from unittest.mock import AsyncMock

import aiohttp
import pytest
from msrest.exceptions import HttpOperationError

from expert_finder.config import RetrySettings
from expert_finder.services.retry_policy import send_http_request, send_with_retry
from tests.fakes import FakeResponse, FakeSession, ThrottledError

NO_WAIT = RetrySettings(max_attempts=3, backoff_base_seconds=0, max_backoff_seconds=0)


@pytest.mark.asyncio
async def test_transient_status_is_retried():
    session = FakeSession(FakeResponse(503, "busy"), FakeResponse(200, '{"ok": true}'))

    result = await send_http_request(session, "GET", "https://example.com", NO_WAIT)

    assert result.ok
    assert result.json() == {"ok": True}
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_client_error_is_retried():
    session = FakeSession(aiohttp.ClientConnectionError("reset"), FakeResponse(200, ""))

    result = await send_http_request(session, "GET", "https://example.com", NO_WAIT)

    assert result.status == 200
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_non_transient_status_is_not_retried():
    session = FakeSession(FakeResponse(404, "missing", reason="Not Found"))

    result = await send_http_request(session, "GET", "https://example.com", NO_WAIT)

    assert result.status == 404
    assert result.reason == "Not Found"
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_attempts_exhausted_returns_last_response():
    session = FakeSession(*[FakeResponse(500, f"fail {i}") for i in range(3)])

    result = await send_http_request(session, "GET", "https://example.com", NO_WAIT)

    assert result.status == 500
    assert result.text == "fail 2"
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_send_with_retry_recovers_from_throttling():
    send = AsyncMock(side_effect=[ThrottledError(), "sent"])

    result = await send_with_retry(send, RetrySettings(max_attempts=5, backoff_base_seconds=0, max_backoff_seconds=0))

    assert result == "sent"
    assert send.await_count == 2


@pytest.mark.asyncio
async def test_send_with_retry_gives_up_after_max_attempts():
    send = AsyncMock(side_effect=ThrottledError())

    with pytest.raises(HttpOperationError):
        await send_with_retry(send, RetrySettings(max_attempts=5, backoff_base_seconds=0, max_backoff_seconds=0))

    assert send.await_count == 5


@pytest.mark.asyncio
async def test_send_with_retry_does_not_retry_other_errors():
    send = AsyncMock(side_effect=ValueError("bad card"))

    with pytest.raises(ValueError):
        await send_with_retry(send, NO_WAIT)

    assert send.await_count == 1
