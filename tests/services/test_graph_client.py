"""
Tests for the Graph /me profile client.
"""
import json

import pytest

from expert_finder.config import RetrySettings
from expert_finder.models import UserProfileUpdate
from expert_finder.services.graph_client import GRAPH_ME_ENDPOINT, GraphClient
from tests.fakes import FakeResponse, FakeSession

NO_WAIT = RetrySettings(max_attempts=3, backoff_base_seconds=0, max_backoff_seconds=0)


@pytest.mark.asyncio
async def test_get_profile_parses_graph_user():
    body = {
        "id": "user-1",
        "displayName": "Ada Lovelace",
        "jobTitle": "Engineer",
        "aboutMe": "Analytical engines",
        "skills": ["math", "poetry"],
        "interests": None,
        "schools": [],
    }
    session = FakeSession(FakeResponse(200, json.dumps(body)))

    profile = await GraphClient(NO_WAIT, session=session).get_profile("graph-token")

    assert profile.display_name == "Ada Lovelace"
    assert profile.skills == ["math", "poetry"]
    assert profile.interests == []
    method, url, kwargs = session.calls[0]
    assert url.startswith(f"{GRAPH_ME_ENDPOINT}?$select=")
    assert kwargs["headers"]["Authorization"] == "Bearer graph-token"


@pytest.mark.asyncio
async def test_get_profile_returns_none_on_failure():
    session = FakeSession(FakeResponse(403, "forbidden", reason="Forbidden"))

    assert await GraphClient(NO_WAIT, session=session).get_profile("graph-token") is None


@pytest.mark.asyncio
async def test_update_profile_sends_patch_body():
    session = FakeSession(FakeResponse(204))
    update = UserProfileUpdate(about_me="Hello", skills=["python"], interests=[], schools=["MIT"])

    assert await GraphClient(NO_WAIT, session=session).update_profile("graph-token", update) is True

    method, url, kwargs = session.calls[0]
    assert method == "PATCH"
    assert url == GRAPH_ME_ENDPOINT
    assert json.loads(kwargs["data"]) == {
        "aboutMe": "Hello",
        "skills": ["python"],
        "interests": [],
        "schools": ["MIT"],
    }


@pytest.mark.asyncio
async def test_update_profile_failure_returns_false():
    session = FakeSession(FakeResponse(400, "invalid", reason="Bad Request"))

    assert await GraphClient(NO_WAIT, session=session).update_profile("graph-token", "{}") is False
