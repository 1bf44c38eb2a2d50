"""
OAuth sign-in prompt for the bot's Azure AD connection.

Wraps the adapter's user token calls: silent token lookup, sending the
sign-in card, and recognizing the token when the user comes back through
signin/verifyState or by typing the six digit magic code.
"""
import logging
import re
from typing import Optional

from botbuilder.core import CardFactory, MessageFactory, TurnContext
from botbuilder.schema import ActionTypes, ActivityTypes, CardAction, SigninCard

from expert_finder.api.teams.invoke_models import InvokeStatus, create_status_response
from expert_finder.resources import Strings, get_strings

logger = logging.getLogger(__name__)

VERIFY_STATE_INVOKE = "signin/verifyState"

MAGIC_CODE_PATTERN = re.compile(r"(?<!\d)\d{6}(?!\d)")


def is_verify_state(activity) -> bool:
    return activity.type == ActivityTypes.invoke and activity.name == VERIFY_STATE_INVOKE


class SignInPrompt:
    """Sign-in helper bound to one OAuth connection"""

    def __init__(self, connection_name: str):
        self.connection_name = connection_name

    async def get_token_silently(self, turn_context: TurnContext, magic_code: Optional[str] = None) -> Optional[str]:
        """Return the cached user token, if the user is already signed in."""
        token_response = await turn_context.adapter.get_user_token(turn_context, self.connection_name, magic_code)
        return token_response.token if token_response else None

    async def get_sign_in_link(self, turn_context: TurnContext) -> str:
        return await turn_context.adapter.get_oauth_sign_in_link(turn_context, self.connection_name)

    async def send_prompt(self, turn_context: TurnContext, strings: Optional[Strings] = None):
        strings = strings or get_strings()
        link = await self.get_sign_in_link(turn_context)
        card = SigninCard(
            text=strings.sign_in_card_text,
            buttons=[
                CardAction(type=ActionTypes.signin, title=strings.sign_in_button_text, value=link),
            ],
        )
        await turn_context.send_activity(MessageFactory.attachment(CardFactory.signin_card(card)))
        logger.info(f"Sign-in card sent for conversation {turn_context.activity.conversation.id}")

    async def recognize_token(self, turn_context: TurnContext) -> Optional[str]:
        """
        Resolve the token the user just obtained.

        Answers signin/verifyState invokes with 200 or 404 so Teams closes or
        keeps the sign-in window.
        """
        activity = turn_context.activity

        if is_verify_state(activity):
            state = (activity.value or {}).get("state")
            token_response = await turn_context.adapter.get_user_token(
                turn_context, self.connection_name, state
            )
            status = InvokeStatus.SUCCESS if token_response and token_response.token else InvokeStatus.NOT_FOUND
            await turn_context.send_activity(create_status_response(status).to_activity())
            return token_response.token if token_response else None

        if activity.type == ActivityTypes.message and activity.text:
            match = MAGIC_CODE_PATTERN.search(activity.text)
            if match:
                token_response = await turn_context.adapter.get_user_token(
                    turn_context, self.connection_name, match.group(0)
                )
                return token_response.token if token_response else None

        return None

    async def sign_out(self, turn_context: TurnContext):
        await turn_context.adapter.sign_out_user(turn_context, self.connection_name)
