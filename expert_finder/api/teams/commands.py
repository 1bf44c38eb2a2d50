"""
Command text parsing for incoming Teams activities.
"""
import re
import unicodedata
from typing import Any, Dict, Optional

from botbuilder.schema import Activity, ActivityTypes


def remove_mention_text(text: str) -> str:
    """
    Remove bot mention tags from message text.

    Teams includes mentions as <at>BotName</at> in the text.
    """
    if not text:
        return ""
    cleaned = re.sub(r'<at>.*?</at>', '', text, flags=re.IGNORECASE)
    return ' '.join(cleaned.split())


def normalize_command(text: Optional[str]) -> str:
    """Upper-case and trim command text so "my profile " matches "MY PROFILE"."""
    if not text:
        return ""

    normalized = unicodedata.normalize("NFKC", text)

    # Zero-width and formatting characters show up in Teams input
    normalized = "".join(ch for ch in normalized if unicodedata.category(ch) != "Cf")

    return " ".join(normalized.split()).upper()


def card_submission(activity: Activity) -> Optional[Dict[str, Any]]:
    """
    Card payload of an activity.

    Task module invokes wrap it as value["data"]; messages posted by
    Action.Submit carry it directly as value.
    """
    value = activity.value
    if not isinstance(value, dict):
        return None
    data = value.get("data")
    if isinstance(data, dict):
        return data
    return value


def extract_command(activity: Activity) -> Optional[str]:
    """
    Command carried by an activity: the message text, or the card's
    "command" field when the message has no text.
    """
    if activity.type == ActivityTypes.message and activity.text:
        return remove_mention_text(activity.text).strip()

    submission = card_submission(activity)
    if submission and submission.get("command") is not None:
        return str(submission["command"])
    return None
