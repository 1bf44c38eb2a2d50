"""
Adaptive Cards for the Expert Finder bot.
Card builders return attachment dicts; to_attachment wraps them for sending.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from botbuilder.core import CardFactory
from botbuilder.schema import Attachment

from expert_finder.config import FETCH_ACTION_TYPE, MY_PROFILE_COMMAND, SEARCH_COMMAND
from expert_finder.models import ProfileRecord, UserProfile
from expert_finder.resources import Strings, get_strings

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
THUMBNAIL_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.thumbnail"
CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
CARD_VERSION = "1.0"

DELVE_PROFILE_URL = "https://delve.office.com/"
TEAMS_CHAT_URL = "https://teams.microsoft.com/l/chat/0/0"

# Messaging extension command id -> ProfileRecord field shown in the preview
MESSAGING_EXTENSION_PREVIEW_FIELDS = {
    "skills": "skills",
    "interests": "interests",
    "schools": "schools",
}


def join_profile_values(values: Optional[Sequence[str]], strings: Optional[Strings] = None) -> str:
    """Render a profile list as 'a;b;c', or the none placeholder when empty."""
    strings = strings or get_strings()
    return ";".join(values) if values else strings.none_text


def split_profile_values(text: Optional[str]) -> List[str]:
    """Parse a ';' separated input back into a list, dropping empty entries."""
    if not text:
        return []
    return [value for value in text.split(";") if value]


def _adaptive_card(body: List[Dict[str, Any]], actions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    content = {
        "$schema": CARD_SCHEMA,
        "type": "AdaptiveCard",
        "version": CARD_VERSION,
        "body": body,
    }
    if actions:
        content["actions"] = actions
    return {
        "contentType": ADAPTIVE_CARD_CONTENT_TYPE,
        "content": content,
    }


def to_attachment(card: Dict[str, Any]) -> Attachment:
    """Wrap a card dict as a Bot Framework attachment."""
    if card["contentType"] == ADAPTIVE_CARD_CONTENT_TYPE:
        return CardFactory.adaptive_card(card["content"])
    return Attachment(content_type=card["contentType"], content=card["content"])


def _task_fetch_action(title: str, command: str, card_id: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "msteams": {"type": FETCH_ACTION_TYPE},
        "command": command,
    }
    if card_id is not None:
        data["MyProfileCardId"] = card_id
    return {"type": "Action.Submit", "title": title, "data": data}


def _message_back_action(title: str, command: str) -> Dict[str, Any]:
    return {
        "type": "Action.Submit",
        "title": title,
        "data": {
            "msteams": {"type": "messageBack", "displayText": title},
            "command": command,
        },
    }


def _details_show_card(
    skills: str,
    interests: str,
    schools: str,
    profile_url: str,
    strings: Strings,
) -> Dict[str, Any]:
    body = []
    for title, value in (
        (strings.skills_title, skills),
        (strings.interest_title, interests),
        (strings.schools_title, schools),
    ):
        body.append({"type": "TextBlock", "text": title, "separator": True, "wrap": True, "weight": "Bolder"})
        body.append({"type": "TextBlock", "text": value, "wrap": True, "spacing": "None"})

    return {
        "type": "Action.ShowCard",
        "title": strings.details_title,
        "card": {
            "type": "AdaptiveCard",
            "version": CARD_VERSION,
            "body": body,
            "actions": [
                {"type": "Action.OpenUrl", "title": strings.go_to_profile_title, "url": profile_url},
            ],
        },
    }


def create_welcome_card(app_base_url: str, strings: Optional[Strings] = None) -> Dict[str, Any]:
    """
    Card sent when the bot is installed for a user.
    Buttons post the command back as a message.
    """
    strings = strings or get_strings()
    body = [
        {
            "type": "ColumnSet",
            "columns": [
                {
                    "type": "Column",
                    "width": "auto",
                    "items": [
                        {"type": "Image", "url": f"{app_base_url}/Artifacts/appLogo.png", "size": "Large"},
                    ],
                },
                {
                    "type": "Column",
                    "width": "auto",
                    "items": [
                        {
                            "type": "TextBlock",
                            "text": strings.welcome_text,
                            "size": "Large",
                            "weight": "Bolder",
                            "wrap": True,
                        },
                        {"type": "TextBlock", "text": strings.welcome_card_content, "wrap": True},
                    ],
                },
            ],
        },
        {
            "type": "TextBlock",
            "text": f"**{strings.search_title}**: {strings.search_welcome_card_content}",
            "horizontalAlignment": "Left",
            "wrap": True,
        },
        {
            "type": "TextBlock",
            "text": f"**{strings.my_profile_title}**: {strings.my_profile_welcome_card_content}",
            "horizontalAlignment": "Left",
            "wrap": True,
        },
    ]
    actions = [
        _message_back_action(strings.search_title, SEARCH_COMMAND),
        _message_back_action(strings.my_profile_title, MY_PROFILE_COMMAND),
    ]
    return _adaptive_card(body, actions)


def create_help_card(strings: Optional[Strings] = None) -> Dict[str, Any]:
    """Card sent for input the bot does not recognize."""
    strings = strings or get_strings()
    body = [
        {"type": "TextBlock", "text": strings.help_message, "wrap": True},
        {
            "type": "TextBlock",
            "text": f"**{strings.search_title}**: {strings.search_welcome_card_content}",
            "wrap": True,
        },
        {
            "type": "TextBlock",
            "text": f"**{strings.my_profile_title}**: {strings.my_profile_welcome_card_content}",
            "wrap": True,
        },
    ]
    actions = [
        _message_back_action(strings.search_title, SEARCH_COMMAND),
        _message_back_action(strings.my_profile_title, MY_PROFILE_COMMAND),
    ]
    return _adaptive_card(body, actions)


def create_search_card(strings: Optional[Strings] = None) -> Dict[str, Any]:
    """Card with a button opening the search task module."""
    strings = strings or get_strings()
    body = [
        {"type": "TextBlock", "text": strings.search_card_content, "wrap": True},
    ]
    return _adaptive_card(body, [_task_fetch_action(strings.search_title, SEARCH_COMMAND)])


def create_my_profile_card(profile: UserProfile, card_id: str, strings: Optional[Strings] = None) -> Dict[str, Any]:
    """
    The user's own profile, with an edit button and a details section.

    card_id is echoed back by the edit button so the card can be replaced
    after the profile is updated.
    """
    strings = strings or get_strings()
    body = [
        {
            "type": "TextBlock",
            "text": profile.display_name,
            "horizontalAlignment": "Left",
            "weight": "Bolder",
            "wrap": True,
        },
        {
            "type": "TextBlock",
            "text": profile.job_title,
            "horizontalAlignment": "Left",
            "isSubtle": True,
            "spacing": "None",
            "wrap": True,
        },
        {
            "type": "TextBlock",
            "text": profile.about_me,
            "horizontalAlignment": "Left",
            "spacing": "Small",
            "wrap": True,
        },
    ]
    actions = [
        _task_fetch_action(strings.edit_profile_title, MY_PROFILE_COMMAND, card_id),
        _details_show_card(
            join_profile_values(profile.skills, strings),
            join_profile_values(profile.interests, strings),
            join_profile_values(profile.schools, strings),
            f"{DELVE_PROFILE_URL}?u={profile.id}&v=profiledetails",
            strings,
        ),
    ]
    return _adaptive_card(body, actions)


def create_empty_profile_card(card_id: str, strings: Optional[Strings] = None) -> Dict[str, Any]:
    """Shown when the profile could not be loaded; still offers editing."""
    strings = strings or get_strings()
    body = [
        {"type": "TextBlock", "text": strings.empty_profile_card_content, "wrap": True},
    ]
    return _adaptive_card(body, [_task_fetch_action(strings.edit_profile_title, MY_PROFILE_COMMAND, card_id)])


def _labeled_input(label: str, input_id: str, placeholder: str, value: Optional[str], max_length: int) -> List[Dict[str, Any]]:
    return [
        {"type": "TextBlock", "text": label, "size": "Small", "wrap": True},
        {
            "type": "Input.Text",
            "id": input_id,
            "placeholder": placeholder,
            "isMultiline": True,
            "style": "Text",
            "maxLength": max_length,
            "value": value,
            "spacing": "None",
        },
    ]


def create_edit_profile_card(
    profile: UserProfile,
    card_id: str,
    app_base_url: str,
    strings: Optional[Strings] = None,
) -> Dict[str, Any]:
    """
    Task module card for editing about-me, interests, schools and skills.

    Empty lists are left blank so the placeholder shows and an unchanged
    submit stores nothing.
    """
    strings = strings or get_strings()
    items = [
        {"type": "TextBlock", "text": strings.full_name_title, "size": "Small", "wrap": True},
        {"type": "TextBlock", "text": profile.display_name, "spacing": "None", "wrap": True},
    ]
    items += _labeled_input(strings.about_me_title, "aboutme", strings.about_me_placeholder_text, profile.about_me, 300)
    items.append({
        "type": "ColumnSet",
        "columns": [
            {
                "type": "Column",
                "width": "auto",
                "items": [{"type": "Image", "url": f"{app_base_url}/Artifacts/validationIcon.png"}],
            },
            {
                "type": "Column",
                "width": "auto",
                "items": [{"type": "TextBlock", "text": strings.validation_task_module_message, "wrap": True}],
            },
        ],
    })
    items += _labeled_input(
        strings.interest_title, "interests", strings.interests_placeholder_text,
        ";".join(profile.interests), 100,
    )
    items += _labeled_input(
        strings.schools_title, "schools", strings.schools_placeholder_text,
        ";".join(profile.schools), 200,
    )
    items += _labeled_input(
        strings.skills_title, "skills", strings.skills_placeholder_text,
        ";".join(profile.skills), 100,
    )

    actions = [
        {
            "type": "Action.Submit",
            "title": strings.update_title,
            "data": {"command": MY_PROFILE_COMMAND, "MyProfileCardId": card_id},
        }
    ]
    return _adaptive_card([{"type": "Container", "items": items}], actions)


def create_user_detail_card(record: ProfileRecord, strings: Optional[Strings] = None) -> Dict[str, Any]:
    """Card for one profile picked in the search task module."""
    strings = strings or get_strings()
    body = [
        {"type": "TextBlock", "text": record.preferred_name, "weight": "Bolder", "wrap": True},
        {"type": "TextBlock", "text": record.job_title, "isSubtle": True, "spacing": "None", "wrap": True},
        {"type": "TextBlock", "text": strings.about_me_title, "wrap": True},
        {"type": "TextBlock", "text": record.about_me, "isSubtle": True, "spacing": "None", "wrap": True},
    ]
    actions = [
        {
            "type": "Action.OpenUrl",
            "title": strings.chat_title,
            "url": f"{TEAMS_CHAT_URL}?users={record.work_email}",
        },
        _details_show_card(
            record.skills or strings.none_text,
            record.interests or strings.none_text,
            record.schools or strings.none_text,
            f"{record.path}&v=profiledetails",
            strings,
        ),
    ]
    return _adaptive_card(body, actions)


def create_messaging_extension_cards(
    records: Sequence[ProfileRecord],
    command_id: str,
    strings: Optional[Strings] = None,
) -> List[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """
    Build (detail card, thumbnail preview) pairs for messaging extension results.
    The preview text shows the field the user searched by.
    """
    strings = strings or get_strings()
    preview_field = MESSAGING_EXTENSION_PREVIEW_FIELDS.get(command_id)
    results = []
    for record in records:
        detail_card = _adaptive_card([
            {"type": "TextBlock", "text": record.preferred_name, "weight": "Bolder", "wrap": True},
            {"type": "TextBlock", "text": record.job_title, "spacing": "None", "wrap": True},
            {"type": "TextBlock", "text": strings.about_me_title, "wrap": True},
            {"type": "TextBlock", "text": record.about_me, "isSubtle": True, "spacing": "None", "wrap": True},
        ])
        preview = {
            "contentType": THUMBNAIL_CARD_CONTENT_TYPE,
            "content": {
                "title": f"<strong>{record.preferred_name}</strong>",
                "subtitle": record.job_title,
                "text": getattr(record, preview_field) if preview_field else None,
            },
        }
        results.append((detail_card, preview))
    return results


def to_messaging_extension_attachment(detail_card: Dict[str, Any], preview: Dict[str, Any]) -> Dict[str, Any]:
    """Messaging extension attachment: the detail card plus its preview."""
    return {**detail_card, "preview": preview}

