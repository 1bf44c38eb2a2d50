"""
Bot Framework adapter with a catch-all turn error handler.
"""
import logging
from typing import Optional

from botbuilder.core import (
    BotFrameworkAdapter,
    BotFrameworkAdapterSettings,
    ConversationState,
    TurnContext,
)
from botframework.connector.auth import MicrosoftAppCredentials

from expert_finder.config import BotSettings
from expert_finder.resources import get_strings

logger = logging.getLogger(__name__)


class AdapterWithErrorHandler(BotFrameworkAdapter):
    """
    Adapter that apologizes to the user and resets conversation state when a
    turn raises, so a bad dialog state cannot wedge the conversation.
    """

    def __init__(self, settings: BotSettings, conversation_state: Optional[ConversationState] = None):
        adapter_settings = BotFrameworkAdapterSettings(
            app_id=settings.app_id,
            app_password=settings.app_password,
            oauth_endpoint=settings.token_service_url,
        )
        super().__init__(adapter_settings)

        MicrosoftAppCredentials.microsoft_app_id = settings.app_id
        MicrosoftAppCredentials.microsoft_app_password = settings.app_password

        self.conversation_state = conversation_state
        self.on_turn_error = self._handle_turn_error

    async def _handle_turn_error(self, turn_context: TurnContext, error: Exception):
        logger.error(f"Exception caught : {error}", exc_info=error)

        await turn_context.send_activity(get_strings().error_message)

        if self.conversation_state is not None:
            conversation = turn_context.activity.conversation
            logger.debug(f"Clearing conversation state for {conversation.id if conversation else None}")
            try:
                await self.conversation_state.delete(turn_context)
            except Exception as e:
                logger.error(f"Exception caught on attempting to delete conversation state: {e}", exc_info=True)
