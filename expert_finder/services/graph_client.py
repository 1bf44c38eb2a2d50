"""
Microsoft Graph client for the signed-in user's profile (/me).
"""

import logging
from typing import Optional, Union

import aiohttp

from expert_finder.config import HTTP_RETRY_SETTINGS, RetrySettings
from expert_finder.models import UserProfile, UserProfileUpdate
from expert_finder.services.retry_policy import HttpResult, send_http_request

logger = logging.getLogger(__name__)

GRAPH_ME_ENDPOINT = "https://graph.microsoft.com/v1.0/me"
PROFILE_SELECT = "id,displayname,jobTitle,aboutme,skills,interests,schools"


class GraphClient:
    """Reads and updates the caller's Graph profile with a delegated token"""

    def __init__(
        self,
        retry_settings: RetrySettings = HTTP_RETRY_SETTINGS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.retry_settings = retry_settings
        self._session = session

    async def _send(self, method: str, url: str, **kwargs) -> HttpResult:
        if self._session is not None:
            return await send_http_request(self._session, method, url, self.retry_settings, **kwargs)
        async with aiohttp.ClientSession() as session:
            return await send_http_request(session, method, url, self.retry_settings, **kwargs)

    async def get_profile(self, access_token: str) -> Optional[UserProfile]:
        """Fetch the user's profile; None on any non-success response."""
        url = f"{GRAPH_ME_ENDPOINT}?$select={PROFILE_SELECT}"
        headers = {"Authorization": f"Bearer {access_token}"}

        result = await self._send("GET", url, headers=headers)
        if not result.ok:
            logger.info(f"Error getting user profile from Graph: {result.status} - {result.text}")
            return None

        return UserProfile.model_validate(result.json() or {})

    async def update_profile(self, access_token: str, profile_fields: Union[UserProfileUpdate, str]) -> bool:
        """
        PATCH the user's profile.

        Args:
            access_token: Delegated Graph token
            profile_fields: Update model or an already serialized JSON body

        Returns:
            True when Graph accepted the update
        """
        body = profile_fields.to_graph_json() if isinstance(profile_fields, UserProfileUpdate) else profile_fields
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        result = await self._send("PATCH", GRAPH_ME_ENDPOINT, headers=headers, data=body.encode("utf-8"))
        if result.ok:
            return True

        logger.info(f"Graph API user profile update error: {result.status} - {result.text}")
        return False
