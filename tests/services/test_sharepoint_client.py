"""
Tests for the SharePoint people search client.
"""
import json

import pytest

from expert_finder.config import RetrySettings
from expert_finder.services.sharepoint_client import (
    PEOPLE_SEARCH_SOURCE_ID,
    SharePointClient,
    SharePointSearchError,
    SharePointUnauthorizedError,
    build_query_text,
    build_search_url,
    parse_search_response,
)
from tests.fakes import FakeResponse, FakeSession

NO_WAIT = RetrySettings(max_attempts=3, backoff_base_seconds=0, max_backoff_seconds=0)


def _search_payload(*rows):
    return {
        "PrimaryQueryResult": {
            "RelevantResults": {
                "Table": {
                    "Rows": [
                        {"Cells": [{"Key": key, "Value": value} for key, value in row.items()]}
                        for row in rows
                    ]
                }
            }
        }
    }


class TestQueryText:

    def test_two_filters(self):
        assert build_query_text("rust", ["skills", "interests"]) == "skills:rust OR interests:rust"

    def test_no_filters_defaults_to_skills(self):
        assert build_query_text("rust", []) == "skills:rust"
        assert build_query_text("rust", None) == "skills:rust"

    @pytest.mark.parametrize("filters", [["skills"], ["skills", "schools"], ["a", "b", "c", "d"]])
    def test_separator_count_and_suffix(self, filters):
        query = build_query_text("go", filters)
        assert query.count(" OR ") == len(filters) - 1
        assert query.endswith(f"{filters[-1]}:go")

    def test_search_url(self):
        url = build_search_url("rust", ["skills"], "https://contoso.sharepoint.com/")
        assert url == (
            "https://contoso.sharepoint.com/_api/search/query"
            f"?querytext='skills:rust'&sourceid='{PEOPLE_SEARCH_SOURCE_ID}'"
        )

    @pytest.mark.parametrize("text, encoded", [
        ("C#", "skills:C%23"),
        ("R&D", "skills:R%26D"),
        ("C++", "skills:C%2B%2B"),
    ])
    def test_search_url_encodes_query_text(self, text, encoded):
        url = build_search_url(text, ["skills"], "https://contoso.sharepoint.com")
        assert f"querytext='{encoded}'&sourceid='{PEOPLE_SEARCH_SOURCE_ID}'" in url
        assert "#" not in url

    def test_search_url_encodes_separator_spaces(self):
        url = build_search_url("go", ["skills", "schools"], "https://contoso.sharepoint.com")
        assert "querytext='skills:go%20OR%20schools:go'" in url

    def test_missing_search_text(self):
        assert build_query_text(None, ["skills"]) == "skills:"


def test_parse_search_response_maps_cells():
    payload = _search_payload({
        "PreferredName": "Ada Lovelace",
        "JobTitle": "Engineer",
        "Skills": "math;engines",
        "WorkEmail": "ada@contoso.com",
        "OriginalPath": "https://contoso-my.sharepoint.com/person.aspx?user=ada",
        "Rank": "12.5",
    })

    records = parse_search_response(payload)

    assert len(records) == 1
    assert records[0].preferred_name == "Ada Lovelace"
    assert records[0].skills == "math;engines"
    assert records[0].path == "https://contoso-my.sharepoint.com/person.aspx?user=ada"
    assert records[0].interests is None


def test_parse_search_response_empty_payload():
    assert parse_search_response({}) == []


@pytest.mark.asyncio
async def test_search_sends_bearer_token():
    session = FakeSession(FakeResponse(200, json.dumps(_search_payload({"PreferredName": "Ada"}))))
    client = SharePointClient(NO_WAIT, session=session)

    records = await client.search("rust", ["skills"], "sp-token", "https://contoso.sharepoint.com")

    assert [r.preferred_name for r in records] == ["Ada"]
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert "querytext='skills:rust'" in url
    assert kwargs["headers"]["Authorization"] == "Bearer sp-token"


@pytest.mark.asyncio
async def test_search_unauthorized():
    session = FakeSession(FakeResponse(401, "token expired", reason="Unauthorized"))
    client = SharePointClient(NO_WAIT, session=session)

    with pytest.raises(SharePointUnauthorizedError):
        await client.search("rust", [], "expired", "https://contoso.sharepoint.com")
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_search_other_failure_carries_reason_and_body():
    session = FakeSession(FakeResponse(400, "bad query", reason="Bad Request"))
    client = SharePointClient(NO_WAIT, session=session)

    with pytest.raises(SharePointSearchError) as exc_info:
        await client.search("rust", [], "token", "https://contoso.sharepoint.com")

    assert not isinstance(exc_info.value, SharePointUnauthorizedError)
    assert exc_info.value.reason == "Bad Request"
    assert exc_info.value.body == "bad query"
