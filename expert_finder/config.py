"""
Configuration for the Expert Finder bot and web tab API.

Settings are read from environment variables (optionally loaded from
.env.local) into dataclasses. Retry policies are plain dataclasses passed
explicitly to the components that perform outbound calls.
"""

import os
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv(".env.local")

# Commands understood by the bot, compared after upper-casing and trimming
MY_PROFILE_COMMAND = "MY PROFILE"
SEARCH_COMMAND = "SEARCH"
KNOWN_COMMANDS = (MY_PROFILE_COMMAND, SEARCH_COMMAND)

# Card action type that opens a task module
FETCH_ACTION_TYPE = "task/fetch"

GRAPH_RESOURCE_URL = "https://graph.microsoft.com"
BOT_TOKEN_SERVICE_URL = "https://token.botframework.com"

TASK_MODULE_HEIGHT = 600
TASK_MODULE_WIDTH = 600
API_TOKEN_EXPIRY_MINUTES = 60
SIGN_IN_TIMEOUT_MS = 5 * 60 * 1000


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass
class RetrySettings:
    """Bounded retry policy for outbound calls."""
    max_attempts: int = 3
    backoff_base_seconds: float = 2.0
    max_backoff_seconds: float = 30.0


# Transient HTTP errors against Graph and SharePoint: 3 attempts, 2s/4s waits
HTTP_RETRY_SETTINGS = RetrySettings(max_attempts=3, backoff_base_seconds=2.0)

# Sending several cards may hit the bot message rate limit
SEND_RETRY_SETTINGS = RetrySettings(max_attempts=5, backoff_base_seconds=1.0)


@dataclass
class BotSettings:
    """Application settings consumed by the bot and the web tab API."""
    app_id: Optional[str] = None
    app_password: Optional[str] = None
    app_base_uri: str = ""
    app_insights_instrumentation_key: str = ""
    oauth_connection_name: str = ""
    token_signing_key: Optional[str] = None
    sharepoint_site_url: str = ""
    storage_connection_string: Optional[str] = None
    tenant_id: str = ""
    bot_state_table: str = "BotState"
    user_profile_activity_table: str = "UserProfileActivityInfo"
    token_service_url: str = BOT_TOKEN_SERVICE_URL
    log_level: str = "INFO"
    http_retry: RetrySettings = field(default_factory=lambda: HTTP_RETRY_SETTINGS)
    send_retry: RetrySettings = field(default_factory=lambda: SEND_RETRY_SETTINGS)

    @classmethod
    def from_env(cls) -> "BotSettings":
        """Build settings from environment variables."""
        settings = cls(
            app_id=os.getenv("MICROSOFT_APP_ID"),
            app_password=os.getenv("MICROSOFT_APP_PASSWORD"),
            app_base_uri=(os.getenv("APP_BASE_URI") or "").rstrip("/"),
            app_insights_instrumentation_key=os.getenv("APPINSIGHTS_INSTRUMENTATIONKEY", ""),
            oauth_connection_name=_first_env("OAUTH_CONNECTION_NAME", "CONNECTION_NAME", default=""),
            token_signing_key=_first_env("TOKEN_SIGNING_KEY", "SECURITY_KEY"),
            sharepoint_site_url=os.getenv("SHAREPOINT_SITE_URL", ""),
            storage_connection_string=os.getenv("STORAGE_CONNECTION_STRING"),
            tenant_id=os.getenv("TENANT_ID", ""),
            bot_state_table=os.getenv("BOT_STATE_TABLE", "BotState"),
            token_service_url=os.getenv("BOT_TOKEN_SERVICE_URL", BOT_TOKEN_SERVICE_URL),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

        missing = [
            name for name, value in (
                ("APP_BASE_URI", settings.app_base_uri),
                ("OAUTH_CONNECTION_NAME", settings.oauth_connection_name),
                ("TOKEN_SIGNING_KEY", settings.token_signing_key),
                ("SHAREPOINT_SITE_URL", settings.sharepoint_site_url),
                ("TENANT_ID", settings.tenant_id),
            ) if not value
        ]
        if missing:
            logger.warning(f"Missing configuration values: {', '.join(missing)}")

        return settings


@lru_cache()
def get_settings() -> BotSettings:
    """Return the process-wide settings instance."""
    return BotSettings.from_env()
