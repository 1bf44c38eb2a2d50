"""
Activity router for the Expert Finder bot.

Every turn is classified once into an ActivityKind and dispatched to a single
handler. Turns from other tenants are answered with a notice and nothing else.
"""
import functools
import logging
from enum import Enum
from typing import Any, Dict, Optional

from botbuilder.core import ConversationState, MessageFactory, TurnContext, UserState
from botbuilder.schema import Activity, ActivityTypes

from expert_finder.api.teams.adaptive_cards import (
    create_edit_profile_card,
    create_messaging_extension_cards,
    create_user_detail_card,
    create_welcome_card,
    to_attachment,
    to_messaging_extension_attachment,
)
from expert_finder.api.teams.commands import card_submission, normalize_command
from expert_finder.api.teams.conversation_state import USER_DATA_PROPERTY, UserData
from expert_finder.api.teams.invoke_models import (
    MESSAGING_EXTENSION_QUERY_INVOKE,
    TASK_MODULE_FETCH_INVOKE,
    TASK_MODULE_SUBMIT_INVOKE,
    InvokeActionResult,
    create_empty_response,
    create_messaging_extension_auth,
    create_messaging_extension_message,
    create_messaging_extension_result,
    create_task_module_response,
)
from expert_finder.api.teams.main_dialog import MainDialog
from expert_finder.api.teams.sign_in_prompt import VERIFY_STATE_INVOKE, SignInPrompt
from expert_finder.config import (
    GRAPH_RESOURCE_URL,
    MY_PROFILE_COMMAND,
    SEARCH_COMMAND,
    TASK_MODULE_HEIGHT,
    TASK_MODULE_WIDTH,
    BotSettings,
)
from expert_finder.models import AdaptiveCardAction, SearchSubmitAction
from expert_finder.resources import Strings, get_strings
from expert_finder.services.graph_client import GraphClient
from expert_finder.services.retry_policy import send_with_retry
from expert_finder.services.sharepoint_client import SharePointClient
from expert_finder.services.token_service import TokenService
from expert_finder.telemetry import activity_properties, track_event

logger = logging.getLogger(__name__)

MESSAGING_EXTENSION_INITIAL_PARAMETER = "initialRun"
MESSAGING_EXTENSION_INITIAL_QUERY = "true"


class ActivityKind(Enum):
    MESSAGE = "message"
    MEMBERS_ADDED = "membersAdded"
    MEMBERS_REMOVED = "membersRemoved"
    TASK_MODULE_FETCH = TASK_MODULE_FETCH_INVOKE
    TASK_MODULE_SUBMIT = TASK_MODULE_SUBMIT_INVOKE
    MESSAGING_EXTENSION_QUERY = MESSAGING_EXTENSION_QUERY_INVOKE
    SIGNIN_VERIFY_STATE = VERIFY_STATE_INVOKE
    UNHANDLED = "unhandled"


_INVOKE_KINDS = {
    TASK_MODULE_FETCH_INVOKE: ActivityKind.TASK_MODULE_FETCH,
    TASK_MODULE_SUBMIT_INVOKE: ActivityKind.TASK_MODULE_SUBMIT,
    MESSAGING_EXTENSION_QUERY_INVOKE: ActivityKind.MESSAGING_EXTENSION_QUERY,
    VERIFY_STATE_INVOKE: ActivityKind.SIGNIN_VERIFY_STATE,
}


def classify_activity(activity: Activity) -> ActivityKind:
    """Map an incoming activity to the handler that owns it."""
    if activity.type == ActivityTypes.message:
        return ActivityKind.MESSAGE
    if activity.type == ActivityTypes.conversation_update:
        if activity.members_added:
            return ActivityKind.MEMBERS_ADDED
        if activity.members_removed:
            return ActivityKind.MEMBERS_REMOVED
        return ActivityKind.UNHANDLED
    if activity.type == ActivityTypes.invoke:
        return _INVOKE_KINDS.get(activity.name, ActivityKind.UNHANDLED)
    return ActivityKind.UNHANDLED


def get_tenant_id(activity: Activity) -> Optional[str]:
    conversation = activity.conversation
    if conversation is not None and conversation.tenant_id:
        return conversation.tenant_id
    channel_data = activity.channel_data or {}
    if isinstance(channel_data, dict):
        return (channel_data.get("tenant") or {}).get("id")
    return None


def get_locale(activity: Activity) -> Optional[str]:
    """Locale from the Teams clientInfo entity, else the activity locale."""
    for entity in activity.entities or []:
        if isinstance(entity, dict):
            entity_type, properties = entity.get("type"), entity
        else:
            entity_type = getattr(entity, "type", None)
            properties = getattr(entity, "additional_properties", None) or {}
        if entity_type == "clientInfo" and properties.get("locale"):
            return properties["locale"]
    return activity.locale


class ExpertFinderBot:
    """Routes Teams activities to the dialog and the invoke handlers"""

    def __init__(
        self,
        settings: BotSettings,
        conversation_state: ConversationState,
        user_state: UserState,
        dialog: MainDialog,
        sign_in_prompt: SignInPrompt,
        token_service: TokenService,
        graph_client: GraphClient,
        sharepoint_client: SharePointClient,
    ):
        self.settings = settings
        self.conversation_state = conversation_state
        self.user_state = user_state
        self.dialog = dialog
        self.sign_in_prompt = sign_in_prompt
        self.token_service = token_service
        self.graph_client = graph_client
        self.sharepoint_client = sharepoint_client
        self.user_data_accessor = user_state.create_property(USER_DATA_PROPERTY)

        self._handlers = {
            ActivityKind.MESSAGE: self._on_message,
            ActivityKind.MEMBERS_ADDED: self._on_members_added,
            ActivityKind.MEMBERS_REMOVED: self._on_members_removed,
            ActivityKind.SIGNIN_VERIFY_STATE: self._on_signin_verify_state,
            ActivityKind.TASK_MODULE_FETCH: self._on_task_module_fetch,
            ActivityKind.TASK_MODULE_SUBMIT: self._on_task_module_submit,
            ActivityKind.MESSAGING_EXTENSION_QUERY: self._on_messaging_extension_query,
        }

    def is_expected_tenant(self, activity: Activity) -> bool:
        tenant_id = get_tenant_id(activity)
        return bool(tenant_id) and tenant_id.lower() == (self.settings.tenant_id or "").lower()

    async def on_turn(self, turn_context: TurnContext):
        activity = turn_context.activity

        if not self.is_expected_tenant(activity):
            logger.warning(f"Unexpected tenant id {get_tenant_id(activity)}")
            await turn_context.send_activity(MessageFactory.text(get_strings().invalid_tenant))
            return

        strings = get_strings(get_locale(activity))
        kind = classify_activity(activity)
        handler = self._handlers.get(kind)
        if handler is None:
            logger.info(f"Unhandled activity type: {activity.type} name: {activity.name}")
        else:
            await handler(turn_context, strings)

        await self.conversation_state.save_changes(turn_context)
        await self.user_state.save_changes(turn_context)

    async def _respond(self, turn_context: TurnContext, result: InvokeActionResult):
        await turn_context.send_activity(result.to_activity())

    async def _on_message(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity

        # Messaging extension cards pasted into the chat come back as attachments
        if activity.attachments:
            return

        await turn_context.send_activity(Activity(type=ActivityTypes.typing))
        await self.dialog.run(turn_context, strings)

    async def _on_members_added(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity
        logger.info(
            f"conversationType: {activity.conversation.conversation_type}, "
            f"membersAdded: {len(activity.members_added or [])}"
        )
        if not any(member.id != activity.recipient.id for member in activity.members_added):
            return

        user_data: UserData = await self.user_data_accessor.get(turn_context) or UserData()
        if not user_data.get("is_welcome_card_sent"):
            logger.info(f"Bot added {activity.conversation.id}")
            card = create_welcome_card(self.settings.app_base_uri, strings)
            await turn_context.send_activity(MessageFactory.attachment(to_attachment(card)))
            user_data["is_welcome_card_sent"] = True
            await self.user_data_accessor.set(turn_context, user_data)

    async def _on_members_removed(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity
        logger.info(
            f"conversationType: {activity.conversation.conversation_type}, "
            f"membersRemoved: {len(activity.members_removed or [])}"
        )
        if not any(member.id != activity.recipient.id for member in activity.members_removed):
            return

        user_data: UserData = await self.user_data_accessor.get(turn_context) or UserData()
        user_data["is_welcome_card_sent"] = False
        await self.user_data_accessor.set(turn_context, user_data)

    async def _on_signin_verify_state(self, turn_context: TurnContext, strings: Strings):
        await self.dialog.run(turn_context, strings)

    async def _on_task_module_fetch(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity
        result = create_empty_response()
        try:
            action = AdaptiveCardAction.model_validate(card_submission(activity) or {})
            command = normalize_command(action.command)

            graph_token = await self.token_service.resolve_access_token(activity.from_property.id, GRAPH_RESOURCE_URL)
            if not graph_token:
                await turn_context.send_activity(MessageFactory.text(strings.not_login_text))
                await self.dialog.run(turn_context, strings)
            elif command == SEARCH_COMMAND:
                logger.info("Search fetch activity called")
                api_token = self.token_service.issue_short_lived_credential(
                    aad_object_id=activity.from_property.aad_object_id,
                    service_url=activity.service_url,
                    from_id=activity.from_property.id,
                )
                url = (
                    f"{self.settings.app_base_uri}/?token={api_token}"
                    f"&telemetry={self.settings.app_insights_instrumentation_key}&theme={{theme}}"
                )
                result = create_task_module_response(
                    strings.search_task_module_title, TASK_MODULE_HEIGHT, TASK_MODULE_WIDTH, url=url
                )
            elif command == MY_PROFILE_COMMAND:
                logger.info("My profile fetch activity called")
                profile = await self.graph_client.get_profile(graph_token)
                if profile is None:
                    logger.info("User profile obtained from Graph is null")
                    await turn_context.send_activity(MessageFactory.text(strings.error_message))
                else:
                    card = create_edit_profile_card(
                        profile, action.my_profile_card_id, self.settings.app_base_uri, strings
                    )
                    result = create_task_module_response(
                        strings.edit_profile_title, TASK_MODULE_HEIGHT, TASK_MODULE_WIDTH, card=card
                    )
            else:
                logger.info(f"Invalid command for task module fetch activity: {action.command}")
                await turn_context.send_activity(MessageFactory.text(strings.error_message))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Invalid task module fetch payload: {e}", exc_info=True)
            await turn_context.send_activity(MessageFactory.text(strings.error_message))
        except Exception as e:
            logger.error(f"Error in fetch action of task module: {e}", exc_info=True)

        await self._respond(turn_context, result)

    async def _on_task_module_submit(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity
        submission = card_submission(activity)
        try:
            if not submission:
                logger.info("Request data obtained on task module submit action is null")
                await turn_context.send_activity(MessageFactory.text(strings.error_message))
            else:
                action = SearchSubmitAction.model_validate(submission)
                command = normalize_command(action.command)

                if command == MY_PROFILE_COMMAND:
                    logger.info("Activity type is invoke submit from my profile command")
                    await self.dialog.run(turn_context, strings)
                elif command == SEARCH_COMMAND:
                    logger.info("Activity type is invoke submit from search command")
                    track_event("SearchSubmitted", {
                        **activity_properties(activity),
                        "Profiles": len(action.searchresults),
                    })
                    await self._send_profile_cards(turn_context, action, strings)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Invalid task module submit payload: {e}", exc_info=True)
            await turn_context.send_activity(MessageFactory.text(strings.error_message))
        except Exception as e:
            logger.error(f"Error in submit action of task module: {e}", exc_info=True)

        await self._respond(turn_context, create_empty_response())

    async def _send_profile_cards(self, turn_context: TurnContext, action: SearchSubmitAction, strings: Strings):
        # Several cards in a row can hit the bot's message rate limit
        for record in action.searchresults:
            message = MessageFactory.attachment(to_attachment(create_user_detail_card(record, strings)))
            await send_with_retry(
                functools.partial(turn_context.send_activity, message),
                self.settings.send_retry,
            )

    async def _on_messaging_extension_query(self, turn_context: TurnContext, strings: Strings):
        activity = turn_context.activity
        result = create_empty_response()
        try:
            query: Dict[str, Any] = activity.value or {}
            parameters = query.get("parameters") or []
            parameter = parameters[0] if parameters else {}

            if parameter.get("name") == MESSAGING_EXTENSION_INITIAL_PARAMETER:
                logger.info("Executing initial run parameter from messaging extension")
                token = await self.sign_in_prompt.get_token_silently(turn_context, query.get("state"))
                if not token:
                    link = await self.sign_in_prompt.get_sign_in_link(turn_context)
                    await self._respond(turn_context, create_messaging_extension_auth(link, strings.sign_in_card_text))
                    return

            result = await self._search_for_messaging_extension(
                turn_context, str(parameter.get("value", "")), query.get("commandId"), strings
            )
        except Exception as e:
            logger.error(f"Error in handling invoke action from messaging extension: {e}", exc_info=True)

        await self._respond(turn_context, result)

    async def _search_for_messaging_extension(
        self,
        turn_context: TurnContext,
        search_query: str,
        command_id: Optional[str],
        strings: Strings,
    ) -> InvokeActionResult:
        activity = turn_context.activity
        logger.info(f"searchQuery: {search_query} commandId: {command_id}")

        site_url = self.settings.sharepoint_site_url
        token = await self.token_service.resolve_access_token(activity.from_property.id, site_url)
        if not token:
            logger.info(f"Token not obtained while handling messaging extension query for {activity.conversation.id}")
            return create_empty_response()

        # The initial run sends the literal query "true"
        if search_query == MESSAGING_EXTENSION_INITIAL_QUERY:
            return create_messaging_extension_message(strings.default_card_content_me)

        filters = [command_id] if command_id else []
        records = await self.sharepoint_client.search(search_query, filters, token, site_url)
        if not records:
            logger.info("No user profiles obtained from SharePoint search")

        attachments = [
            to_messaging_extension_attachment(card, preview)
            for card, preview in create_messaging_extension_cards(records, command_id, strings)
        ]
        return create_messaging_extension_result(attachments)
