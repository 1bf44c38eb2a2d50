"""
State kept between turns for the Expert Finder bot.

Values are plain TypedDicts so ConversationState and UserState can persist
them as JSON.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, TypedDict

from expert_finder.config import SIGN_IN_TIMEOUT_MS


class WaterfallStep(str, Enum):
    """Position of the main dialog between turns."""
    AWAITING_AUTH = "awaiting_auth"  # sign-in card sent, waiting for a token
    DISPATCHING = "dispatching"      # token in hand, running the command
    DONE = "done"


class DialogState(TypedDict):
    """
    Active main-dialog waterfall for one conversation.
    Absent when no waterfall is running.
    """
    step: str                               # WaterfallStep value
    origin: str                             # activity type, or invoke name, that started it
    command: Optional[str]                  # pending command, e.g. "MY PROFILE"
    submission: Optional[Dict[str, Any]]    # card payload captured with the command
    expires_at: Optional[str]               # ISO timestamp for the sign-in prompt


class UserData(TypedDict, total=False):
    """Per-user flags."""
    is_welcome_card_sent: Optional[bool]


DIALOG_STATE_PROPERTY = "DialogState"
USER_DATA_PROPERTY = "UserData"

# Messages that sign the user out at any point
LOGOUT_COMMANDS = frozenset({"LOGOUT", "SIGNOUT", "LOG OUT", "SIGN OUT"})

SIGN_IN_TIMEOUT = timedelta(milliseconds=SIGN_IN_TIMEOUT_MS)


def new_dialog_state(
    origin: str,
    command: Optional[str],
    submission: Optional[Dict[str, Any]],
) -> DialogState:
    return DialogState(
        step=WaterfallStep.AWAITING_AUTH.value,
        origin=origin,
        command=command,
        submission=submission,
        expires_at=(datetime.now(timezone.utc) + SIGN_IN_TIMEOUT).isoformat(),
    )


def is_expired(state: DialogState, now: Optional[datetime] = None) -> bool:
    expires_at = state.get("expires_at")
    if not expires_at:
        return False
    now = now or datetime.now(timezone.utc)
    return now >= datetime.fromisoformat(expires_at)
