"""
Tests for the web tab API and the Bot Framework webhook.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from botbuilder.schema import InvokeResponse
from fastapi.testclient import TestClient

from expert_finder.main import app
from expert_finder.models import ProfileRecord
from expert_finder.services.sharepoint_client import SharePointSearchError, SharePointUnauthorizedError
from expert_finder.services.token_service import TokenService

# Test client (no lifespan; app.state is wired per test)
client = TestClient(app)


@pytest.fixture
def token_service(settings):
    service = TokenService(settings, token_client=MagicMock())
    service.resolve_access_token = AsyncMock(return_value="sp-token")
    return service


@pytest.fixture
def wired_app(monkeypatch, settings, token_service, sharepoint_client):
    monkeypatch.setattr(app.state, "settings", settings, raising=False)
    monkeypatch.setattr(app.state, "token_service", token_service, raising=False)
    monkeypatch.setattr(app.state, "sharepoint_client", sharepoint_client, raising=False)
    return app


@pytest.fixture
def auth_headers(token_service):
    token = token_service.issue_short_lived_credential("aad-user-1", "https://smba.example.com/", "29:user-1")
    return {"Authorization": f"Bearer {token}"}


class TestUsersEndpoint:

    def test_search_returns_camel_case_records(self, wired_app, auth_headers, sharepoint_client, settings):
        sharepoint_client.search.return_value = [
            ProfileRecord(preferred_name="Ada", job_title="Engineer", work_email="ada@contoso.com"),
        ]

        response = client.post(
            "/api/users",
            json={"searchText": "rust", "SearchFilters": ["skills", "interests"]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        record = response.json()[0]
        assert record["preferredName"] == "Ada"
        assert record["workEmail"] == "ada@contoso.com"
        sharepoint_client.search.assert_awaited_once_with(
            "rust", ["skills", "interests"], "sp-token", settings.sharepoint_site_url
        )

    def test_missing_search_text_searches_empty_text(self, wired_app, auth_headers, sharepoint_client, settings):
        sharepoint_client.search.return_value = []

        response = client.post("/api/users", json={"searchText": None, "SearchFilters": ["skills"]}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == []
        sharepoint_client.search.assert_awaited_once_with("", ["skills"], "sp-token", settings.sharepoint_site_url)

    def test_missing_token(self, wired_app):
        response = client.post("/api/users", json={"searchText": "rust", "SearchFilters": []})

        assert response.status_code == 401

    def test_invalid_token(self, wired_app):
        response = client.post(
            "/api/users",
            json={"searchText": "rust", "SearchFilters": []},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_missing_body(self, wired_app, auth_headers):
        response = client.post("/api/users", headers=auth_headers)

        assert response.status_code == 403

    def test_token_without_from_id(self, wired_app, token_service):
        token = token_service.issue_short_lived_credential("aad-user-1", "https://smba.example.com/", "")

        response = client.post(
            "/api/users",
            json={"searchText": "rust", "SearchFilters": []},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    def test_sharepoint_unauthorized(self, wired_app, auth_headers, sharepoint_client):
        sharepoint_client.search.side_effect = SharePointUnauthorizedError("Unauthorized", "expired", 401)

        response = client.post("/api/users", json={"searchText": "rust", "SearchFilters": []}, headers=auth_headers)

        assert response.status_code == 401

    def test_no_sharepoint_token(self, wired_app, auth_headers, token_service, sharepoint_client):
        token_service.resolve_access_token.return_value = None

        response = client.post("/api/users", json={"searchText": "rust", "SearchFilters": []}, headers=auth_headers)

        assert response.status_code == 401
        sharepoint_client.search.assert_not_called()

    def test_search_failure_is_bad_request(self, wired_app, auth_headers, sharepoint_client):
        sharepoint_client.search.side_effect = SharePointSearchError("Bad Request", "bad query", 400)

        response = client.post("/api/users", json={"searchText": "rust", "SearchFilters": []}, headers=auth_headers)

        assert response.status_code == 400


class TestResourceEndpoints:

    def test_resource_strings(self, wired_app, auth_headers):
        response = client.get("/api/resource", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert {"searchTextBoxPlaceholder", "skillsTitle", "maxUserProfilesError"} <= set(data)

    def test_error_strings(self, wired_app, auth_headers):
        response = client.get("/api/resource/error", headers=auth_headers)

        assert response.status_code == 200
        assert "refreshLinkText" in response.json()

    def test_requires_token(self, wired_app):
        assert client.get("/api/resource").status_code == 401


class TestMessagesEndpoint:

    @pytest.fixture
    def bot_adapter(self, monkeypatch):
        adapter = MagicMock()
        adapter.process_activity = AsyncMock(return_value=None)
        monkeypatch.setattr(app.state, "adapter", adapter, raising=False)
        monkeypatch.setattr(app.state, "bot", MagicMock(), raising=False)
        return adapter

    def test_message_accepted(self, bot_adapter):
        response = client.post(
            "/api/messages",
            json={"type": "message", "text": "search", "channelId": "msteams"},
            headers={"Authorization": "Bearer bot-token"},
        )

        assert response.status_code == 201
        activity, auth_header, _ = bot_adapter.process_activity.await_args.args
        assert activity.text == "search"
        assert auth_header == "Bearer bot-token"

    def test_invoke_response_is_returned(self, bot_adapter):
        bot_adapter.process_activity.return_value = InvokeResponse(status=200, body={"task": {"type": "continue"}})

        response = client.post("/api/messages", json={"type": "invoke", "name": "task/fetch"})

        assert response.status_code == 200
        assert response.json() == {"task": {"type": "continue"}}

    def test_unauthorized_activity(self, bot_adapter):
        bot_adapter.process_activity.side_effect = PermissionError("Unauthorized Access. Request is not authorized")

        response = client.post("/api/messages", json={"type": "message", "text": "hi"})

        assert response.status_code == 401

    def test_requires_json(self, bot_adapter):
        response = client.post("/api/messages", content=b"hi", headers={"Content-Type": "text/plain"})

        assert response.status_code == 415


def test_health():
    assert client.get("/health").json()["status"] == "healthy"
