"""
SharePoint people search client.

Builds the KQL query from the search text and selected profile fields and
maps the search result table into ProfileRecord objects.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from expert_finder.config import HTTP_RETRY_SETTINGS, RetrySettings
from expert_finder.models import ProfileRecord
from expert_finder.services.retry_policy import HttpResult, send_http_request

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_FIELD = "skills"
PEOPLE_SEARCH_SOURCE_ID = "B09A7990-05EA-4AF9-81EF-EDFAB16C4E31"

# Search result cell key -> ProfileRecord field
CELL_FIELD_MAP = {
    "AboutMe": "about_me",
    "Interests": "interests",
    "JobTitle": "job_title",
    "PreferredName": "preferred_name",
    "Schools": "schools",
    "Skills": "skills",
    "WorkEmail": "work_email",
    "OriginalPath": "path",
}


class SharePointSearchError(Exception):
    """Search request failed with a non-success status."""

    def __init__(self, reason: Optional[str], body: str, status: Optional[int] = None):
        self.reason = reason
        self.body = body
        self.status = status
        super().__init__(f"Error getting user profiles ({reason}): {body}")


class SharePointUnauthorizedError(SharePointSearchError):
    """Search request was rejected with HTTP 401."""


def build_query_text(search_text: str, search_filters: Optional[Sequence[str]]) -> str:
    """
    Build the query text, e.g. "skills:python OR interests:python".

    Without filters the search defaults to the skills field.
    """
    search_text = search_text or ""
    if search_filters:
        return " OR ".join(f"{field}:{search_text}" for field in search_filters)
    return f"{DEFAULT_SEARCH_FIELD}:{search_text}"


def build_search_url(search_text: str, search_filters: Optional[Sequence[str]], site_base_url: str) -> str:
    query = quote(build_query_text(search_text, search_filters), safe=":")
    base = site_base_url.rstrip("/")
    return f"{base}/_api/search/query?querytext='{query}'&sourceid='{PEOPLE_SEARCH_SOURCE_ID}'"


def _cell_value(cells: Iterable[Dict[str, Any]], key: str) -> Optional[str]:
    for cell in cells:
        if cell.get("Key") == key:
            return cell.get("Value")
    return None


def parse_search_response(payload: Dict[str, Any]) -> List[ProfileRecord]:
    """Map PrimaryQueryResult rows to profile records."""
    rows = (
        ((payload.get("PrimaryQueryResult") or {})
         .get("RelevantResults") or {})
        .get("Table") or {}
    ).get("Rows") or []

    records = []
    for row in rows:
        cells = row.get("Cells") or []
        values = {field: _cell_value(cells, key) for key, field in CELL_FIELD_MAP.items()}
        records.append(ProfileRecord(**values))
    return records


class SharePointClient:
    """Client for the SharePoint search REST API"""

    def __init__(
        self,
        retry_settings: RetrySettings = HTTP_RETRY_SETTINGS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.retry_settings = retry_settings
        self._session = session

    async def _get(self, url: str, headers: Dict[str, str]) -> HttpResult:
        if self._session is not None:
            return await send_http_request(self._session, "GET", url, self.retry_settings, headers=headers)
        async with aiohttp.ClientSession() as session:
            return await send_http_request(session, "GET", url, self.retry_settings, headers=headers)

    async def search(
        self,
        search_text: str,
        search_filters: Optional[Sequence[str]],
        access_token: str,
        site_base_url: str,
    ) -> List[ProfileRecord]:
        """
        Run a people search.

        Raises:
            SharePointUnauthorizedError: the token was rejected
            SharePointSearchError: any other non-success response
        """
        url = build_search_url(search_text, search_filters, site_base_url)
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {access_token}",
        }

        result = await self._get(url, headers)

        if result.ok:
            records = parse_search_response(result.json() or {})
            logger.info(f"People search returned {len(records)} profiles")
            return records

        if result.status == 401:
            raise SharePointUnauthorizedError(result.reason, result.text, result.status)

        raise SharePointSearchError(result.reason, result.text, result.status)
