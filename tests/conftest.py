"""
Shared pytest configuration and fixtures for Expert Finder tests.
Provides a recording Bot Framework adapter, in-memory bot state and mocked
downstream clients.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botbuilder.core import ConversationState, MemoryStorage, TurnContext, UserState
from botbuilder.schema import Activity

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from expert_finder.config import BotSettings, RetrySettings
from tests.fakes import (
    TEST_APP_BASE_URI,
    TEST_SIGNING_KEY,
    TEST_TENANT_ID,
    FakeAdapter,
    FakeTableClient,
)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Keep a developer's .env.local out of the test run."""
    test_env = {
        "APP_BASE_URI": TEST_APP_BASE_URI,
        "TENANT_ID": TEST_TENANT_ID,
        "TOKEN_SIGNING_KEY": TEST_SIGNING_KEY,
    }
    with patch.dict(os.environ, test_env):
        yield


@pytest.fixture
def settings():
    return BotSettings(
        app_id="app-id",
        app_password="app-password",
        app_base_uri=TEST_APP_BASE_URI,
        app_insights_instrumentation_key="ikey",
        oauth_connection_name="AzureAD",
        token_signing_key=TEST_SIGNING_KEY,
        sharepoint_site_url="https://contoso.sharepoint.com",
        tenant_id=TEST_TENANT_ID,
        http_retry=RetrySettings(max_attempts=3, backoff_base_seconds=0, max_backoff_seconds=0),
        send_retry=RetrySettings(max_attempts=5, backoff_base_seconds=0, max_backoff_seconds=0),
    )


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def conversation_state(storage):
    return ConversationState(storage)


@pytest.fixture
def user_state(storage):
    return UserState(storage)


@pytest.fixture
def graph_client():
    client = MagicMock()
    client.get_profile = AsyncMock(return_value=None)
    client.update_profile = AsyncMock(return_value=True)
    return client


@pytest.fixture
def sharepoint_client():
    client = MagicMock()
    client.search = AsyncMock(return_value=[])
    return client


@pytest.fixture
def activity_storage():
    store = MagicMock()
    store.upsert = AsyncMock(return_value=True)
    store.lookup = AsyncMock(return_value=None)
    return store


@pytest.fixture
def make_turn_context(adapter):
    """Factory for TurnContexts bound to the recording adapter."""
    def _make(activity: Activity) -> TurnContext:
        return TurnContext(adapter, activity)
    return _make


@pytest.fixture
def table_client():
    return FakeTableClient()
