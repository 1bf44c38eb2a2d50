"""
Expert Finder service - FastAPI application.

Hosts the Microsoft Teams Bot Framework webhook and the REST API used by the
search task module.
"""
import logging
from contextlib import asynccontextmanager

import aiohttp
from botbuilder.core import ConversationState, MemoryStorage, UserState
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from expert_finder.api.resources import router as resource_router
from expert_finder.api.teams.bot import ExpertFinderBot
from expert_finder.api.teams.main_dialog import MainDialog
from expert_finder.api.teams.routes import router as teams_router
from expert_finder.api.teams.sign_in_prompt import SignInPrompt
from expert_finder.api.users import router as users_router
from expert_finder.config import BotSettings, get_settings
from expert_finder.error_handlers import register_error_handlers
from expert_finder.services.activity_storage import UserProfileActivityStorage
from expert_finder.services.adapter import AdapterWithErrorHandler
from expert_finder.services.bot_state_storage import TableStorage
from expert_finder.services.graph_client import GraphClient
from expert_finder.services.sharepoint_client import SharePointClient
from expert_finder.services.token_service import TokenService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_state_storage(settings: BotSettings):
    if settings.storage_connection_string:
        return TableStorage(settings.storage_connection_string, table_name=settings.bot_state_table)
    logger.warning("STORAGE_CONNECTION_STRING not set, bot state is kept in memory")
    return MemoryStorage()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown."""
    logger.info("Expert Finder service starting up...")

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    state_storage = build_state_storage(settings)
    conversation_state = ConversationState(state_storage)
    user_state = UserState(state_storage)

    http_session = aiohttp.ClientSession()
    graph_client = GraphClient(settings.http_retry, session=http_session)
    sharepoint_client = SharePointClient(settings.http_retry, session=http_session)
    token_service = TokenService(settings)

    activity_storage = UserProfileActivityStorage(
        settings.storage_connection_string,
        table_name=settings.user_profile_activity_table,
    )
    try:
        if isinstance(state_storage, TableStorage):
            await state_storage.initialize()
        await activity_storage.initialize()
    except Exception as e:
        logger.error(f"Table storage initialization failed: {e}", exc_info=True)

    sign_in_prompt = SignInPrompt(settings.oauth_connection_name)
    dialog = MainDialog(conversation_state, sign_in_prompt, graph_client, activity_storage)

    app.state.settings = settings
    app.state.token_service = token_service
    app.state.sharepoint_client = sharepoint_client
    app.state.adapter = AdapterWithErrorHandler(settings, conversation_state)
    app.state.bot = ExpertFinderBot(
        settings=settings,
        conversation_state=conversation_state,
        user_state=user_state,
        dialog=dialog,
        sign_in_prompt=sign_in_prompt,
        token_service=token_service,
        graph_client=graph_client,
        sharepoint_client=sharepoint_client,
    )

    yield

    # Cleanup
    logger.info("Expert Finder service shutting down...")
    await http_session.close()
    await activity_storage.close()
    if isinstance(state_storage, TableStorage):
        await state_storage.close()


# Create FastAPI app
app = FastAPI(
    title="Expert Finder",
    description="Find experts in your organization from Microsoft Teams",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(teams_router)
app.include_router(users_router)
app.include_router(resource_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for Azure App Service."""
    return {
        "status": "healthy",
        "service": "expert-finder",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3978)
