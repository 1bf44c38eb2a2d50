"""
Main conversation flow of the Expert Finder bot.

A two step waterfall, persisted in ConversationState between turns:

1. Sign-in: remember the command, then get a token silently or send the
   sign-in card and wait (AWAITING_AUTH).
2. Dispatch: with the token, show the user's profile, send the search card,
   or apply a profile edit (DISPATCHING), then end (DONE clears the state).

Logout messages interrupt the flow at any point.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from botbuilder.core import ConversationState, MessageFactory, TurnContext
from botbuilder.schema import ActivityTypes

from expert_finder.api.teams.adaptive_cards import (
    create_empty_profile_card,
    create_help_card,
    create_my_profile_card,
    create_search_card,
    split_profile_values,
    to_attachment,
)
from expert_finder.api.teams.commands import card_submission, extract_command, normalize_command
from expert_finder.api.teams.conversation_state import (
    DIALOG_STATE_PROPERTY,
    LOGOUT_COMMANDS,
    DialogState,
    WaterfallStep,
    is_expired,
    new_dialog_state,
)
from expert_finder.api.teams.invoke_models import TASK_MODULE_SUBMIT_INVOKE, InvokeStatus, create_status_response
from expert_finder.api.teams.sign_in_prompt import SignInPrompt, is_verify_state
from expert_finder.config import KNOWN_COMMANDS, MY_PROFILE_COMMAND, SEARCH_COMMAND
from expert_finder.models import EditProfileCardAction, UserProfileUpdate
from expert_finder.resources import Strings, get_strings
from expert_finder.services.activity_storage import UserProfileActivityStorage
from expert_finder.services.graph_client import GraphClient
from expert_finder.telemetry import activity_properties, track_event

logger = logging.getLogger(__name__)


class MainDialog:
    """Sign-in, then run one command per waterfall."""

    def __init__(
        self,
        conversation_state: ConversationState,
        sign_in_prompt: SignInPrompt,
        graph_client: GraphClient,
        activity_storage: UserProfileActivityStorage,
    ):
        self.dialog_state_accessor = conversation_state.create_property(DIALOG_STATE_PROPERTY)
        self.sign_in_prompt = sign_in_prompt
        self.graph_client = graph_client
        self.activity_storage = activity_storage

    async def run(self, turn_context: TurnContext, strings: Optional[Strings] = None):
        """Begin or continue the waterfall for this turn."""
        strings = strings or get_strings()
        activity = turn_context.activity
        state: Optional[DialogState] = await self.dialog_state_accessor.get(turn_context)

        if await self._interrupt(turn_context, strings):
            return

        if state and state.get("step") == WaterfallStep.AWAITING_AUTH.value:
            if is_expired(state):
                logger.info(f"Sign-in prompt expired for conversation {activity.conversation.id}")
                if is_verify_state(activity):
                    # Teams still expects an answer to the sign-in callback
                    await turn_context.send_activity(create_status_response(InvokeStatus.NOT_FOUND).to_activity())
                await self._dispatch(turn_context, state, None, strings)
                await self._end(turn_context)
                return

            token = await self.sign_in_prompt.recognize_token(turn_context)
            if token:
                await self._dispatch(turn_context, state, token, strings)
                await self._end(turn_context)
                return

            if is_verify_state(activity):
                # Still waiting for the user to finish signing in
                return

            # Any other input while waiting starts over with that input
            await self._end(turn_context)

        await self._begin(turn_context, strings)

    async def _interrupt(self, turn_context: TurnContext, strings: Strings) -> bool:
        activity = turn_context.activity
        if activity.type != ActivityTypes.message or not activity.text:
            return False
        if normalize_command(activity.text) not in LOGOUT_COMMANDS:
            return False

        await self.sign_in_prompt.sign_out(turn_context)
        await turn_context.send_activity(MessageFactory.text(strings.sign_out_text))
        await self._end(turn_context)
        logger.info(f"User signed out in conversation {activity.conversation.id}")
        return True

    async def _begin(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity

        if is_verify_state(activity):
            # Late sign-in callback with no waiting command; just answer it
            await self.sign_in_prompt.recognize_token(turn_context)
            return

        command = extract_command(activity)
        if activity.type == ActivityTypes.message:
            normalized = normalize_command(command)
            if normalized and normalized not in KNOWN_COMMANDS:
                await turn_context.send_activity(MessageFactory.attachment(to_attachment(create_help_card(strings))))
                await self._end(turn_context)
                return

        origin = activity.name if activity.type == ActivityTypes.invoke else activity.type
        state = new_dialog_state(origin, command, card_submission(activity))

        token = await self.sign_in_prompt.get_token_silently(turn_context)
        if token:
            await self._dispatch(turn_context, state, token, strings)
            await self._end(turn_context)
            return

        await self.sign_in_prompt.send_prompt(turn_context, strings)
        await self.dialog_state_accessor.set(turn_context, state)

    async def _dispatch(
        self,
        turn_context: TurnContext,
        state: DialogState,
        token: Optional[str],
        strings: Strings,
    ):
        activity = turn_context.activity
        state["step"] = WaterfallStep.DISPATCHING.value

        if not token:
            logger.info(f"User is not authenticated and token is null for: {activity.conversation.id}")
            await turn_context.send_activity(MessageFactory.text(strings.not_login_text))
            return

        if state.get("origin") == TASK_MODULE_SUBMIT_INVOKE:
            # Task module submit from the edit-profile card
            await self._edit_profile(turn_context, token, state.get("submission"), strings)
            return

        command = normalize_command(state.get("command"))
        if command == MY_PROFILE_COMMAND:
            track_event("MyProfileCommand", activity_properties(activity))
            await self._show_my_profile(turn_context, token, strings)
        elif command == SEARCH_COMMAND:
            track_event("SearchCommand", activity_properties(activity))
            await turn_context.send_activity(MessageFactory.attachment(to_attachment(create_search_card(strings))))
        else:
            await self._edit_profile(turn_context, token, state.get("submission"), strings)

    async def _end(self, turn_context: TurnContext):
        state = await self.dialog_state_accessor.get(turn_context)
        if state is not None:
            state["step"] = WaterfallStep.DONE.value
            await self.dialog_state_accessor.delete(turn_context)

    async def _show_my_profile(self, turn_context: TurnContext, token: str, strings: Strings):
        conversation_id = turn_context.activity.conversation.id
        try:
            profile = await self.graph_client.get_profile(token)
            card_id = str(uuid.uuid4())

            if profile is not None:
                logger.info(f"User profile obtained from Graph for: {conversation_id}")
                card = create_my_profile_card(profile, card_id, strings)
            else:
                logger.info(f"User profile obtained from Graph is null for: {conversation_id}")
                card = create_empty_profile_card(card_id, strings)

            response = await turn_context.send_activity(MessageFactory.attachment(to_attachment(card)))
            await self._store_card_activity(turn_context, card_id, response.id if response else None, strings)
        except Exception as e:
            logger.error(f"Error occurred while executing my profile for {conversation_id}: {e}", exc_info=True)

    async def _store_card_activity(
        self,
        turn_context: TurnContext,
        card_id: str,
        activity_id: Optional[str],
        strings: Strings,
    ):
        conversation_id = turn_context.activity.conversation.id
        try:
            stored = bool(activity_id) and await self.activity_storage.upsert(card_id, activity_id)
            if not stored:
                logger.info(f"Saving data to table storage failed for: {conversation_id}")
                await turn_context.send_activity(MessageFactory.text(strings.error_message))
        except Exception as e:
            logger.error(f"Saving data to table storage failed for {conversation_id}: {e}", exc_info=True)

    async def _edit_profile(
        self,
        turn_context: TurnContext,
        token: str,
        submission: Optional[Dict[str, Any]],
        strings: Strings,
    ):
        """Apply the edit-profile submission and refresh the profile card."""
        activity = turn_context.activity
        conversation_id = activity.conversation.id
        try:
            action = EditProfileCardAction.model_validate(submission or {})
            update = UserProfileUpdate(
                about_me=action.about_me,
                skills=split_profile_values(action.skills),
                interests=split_profile_values(action.interests),
                schools=split_profile_values(action.schools),
            )

            updated = await self.graph_client.update_profile(token, update)
            if not updated:
                logger.info(f"Failure in saving profile data to Graph for: {conversation_id}")
                await turn_context.send_activity(MessageFactory.text(strings.failed_to_update_profile))
            else:
                logger.info(f"User profile updated using Graph for conversation id: {conversation_id}")
                track_event("ProfileUpdated", activity_properties(activity))

            card_id = action.my_profile_card_id or str(uuid.uuid4())
            profile = await self.graph_client.get_profile(token)
            if profile is not None:
                card = create_my_profile_card(profile, card_id, strings)
            else:
                card = create_empty_profile_card(card_id, strings)

            record = await self.activity_storage.lookup(card_id) if action.my_profile_card_id else None
            card_activity = MessageFactory.attachment(to_attachment(card))

            if record is not None and record.my_profile_card_activity_id:
                card_activity.id = record.my_profile_card_activity_id
                card_activity.conversation = activity.conversation
                await turn_context.update_activity(card_activity)
            else:
                logger.info(f"No stored profile card for {card_id}, sending a new one")
                response = await turn_context.send_activity(card_activity)
                await self._store_card_activity(turn_context, card_id, response.id if response else None, strings)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Invalid edit profile payload for {conversation_id}: {e}", exc_info=True)
            await turn_context.send_activity(MessageFactory.text(strings.error_message))
        except Exception as e:
            logger.error(f"Error occurred while posting my profile data to Graph for {conversation_id}: {e}", exc_info=True)
            await turn_context.send_activity(MessageFactory.text(strings.error_message))

