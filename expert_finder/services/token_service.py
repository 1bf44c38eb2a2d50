"""
Token handling for the bot and the web tab.

- Issues and validates the short-lived HS256 JWT that the bot hands to the
  search task module, so the tab can call the web API on the user's behalf.
- Resolves delegated AAD access tokens for Graph and SharePoint through the
  Bot Framework token service, keyed by the user's Teams id.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from botframework.connector.auth import MicrosoftAppCredentials
from botframework.connector.token_api.aio import TokenApiClient

from expert_finder.config import API_TOKEN_EXPIRY_MINUTES, BotSettings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
CLOCK_SKEW_SECONDS = 30


class TokenConfigurationError(Exception):
    """Raised when no signing key is configured."""


class TokenService:
    """Issues web tab credentials and looks up users' AAD tokens"""

    def __init__(self, settings: BotSettings, token_client: Optional[TokenApiClient] = None):
        self.settings = settings
        self._token_client = token_client

    @property
    def token_client(self) -> TokenApiClient:
        if self._token_client is None:
            credentials = MicrosoftAppCredentials(self.settings.app_id, self.settings.app_password)
            self._token_client = TokenApiClient(credentials, self.settings.token_service_url)
        return self._token_client

    def _signing_key(self) -> str:
        if not self.settings.token_signing_key:
            raise TokenConfigurationError("TOKEN_SIGNING_KEY is not configured")
        return self.settings.token_signing_key

    def issue_short_lived_credential(
        self,
        aad_object_id: str,
        service_url: str,
        from_id: str,
        ttl_minutes: int = API_TOKEN_EXPIRY_MINUTES,
    ) -> str:
        """
        Create a signed JWT for the web tab.

        Args:
            aad_object_id: User's AAD object id
            service_url: Bot service URL of the conversation
            from_id: User's Teams id, used later to look up AAD tokens
            ttl_minutes: Lifetime of the token

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        claims = {
            "aadObjectId": aad_object_id,
            "serviceURL": service_url,
            "fromId": from_id,
            "iss": self.settings.app_base_uri,
            "aud": self.settings.app_base_uri,
            "nbf": now,
            "iat": now,
            "exp": now + timedelta(minutes=ttl_minutes),
        }
        return jwt.encode(claims, self._signing_key(), algorithm=JWT_ALGORITHM)

    def validate_short_lived_credential(self, token: str) -> Dict[str, Any]:
        """Verify signature, issuer, audience and lifetime; return the claims."""
        return jwt.decode(
            token,
            self._signing_key(),
            algorithms=[JWT_ALGORITHM],
            audience=self.settings.app_base_uri,
            issuer=self.settings.app_base_uri,
            leeway=CLOCK_SKEW_SECONDS,
            options={"require": ["exp"]},
        )

    async def resolve_access_token(self, from_id: str, resource_url: str) -> Optional[str]:
        """
        Get the user's AAD token for a resource.

        Returns None when the user has not signed in or the lookup fails.
        """
        try:
            tokens = await self.token_client.user_token.get_aad_tokens(
                from_id,
                self.settings.oauth_connection_name,
                resource_urls=[resource_url],
            )
        except Exception as e:
            logger.error(f"Failed to get AAD token for resource {resource_url}: {e}", exc_info=True)
            return None

        token_response = (tokens or {}).get(resource_url)
        if token_response is None or not getattr(token_response, "token", None):
            logger.info(f"No AAD token available for resource {resource_url}")
            return None
        return token_response.token
