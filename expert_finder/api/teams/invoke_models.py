"""
Data models for Teams Bot invoke response handling.

Task module and messaging extension invokes are answered with an
InvokeResponse whose body follows the Teams wire format. The builders here
produce those bodies as plain dicts.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from botbuilder.schema import Activity, ActivityTypes, InvokeResponse

TASK_MODULE_FETCH_INVOKE = "task/fetch"
TASK_MODULE_SUBMIT_INVOKE = "task/submit"
MESSAGING_EXTENSION_QUERY_INVOKE = "composeExtension/query"


class InvokeStatus(Enum):
    """HTTP-like status codes for invoke responses."""
    SUCCESS = 200
    NOT_FOUND = 404


class MessagingExtensionResultType(str, Enum):
    RESULT = "result"
    MESSAGE = "message"
    AUTH = "auth"


@dataclass
class InvokeActionResult:
    """
    Result of processing an invoke activity.

    A body of None produces an empty 200 response, which Teams treats as
    "nothing to show".
    """
    status: InvokeStatus = InvokeStatus.SUCCESS
    body: Optional[Dict[str, Any]] = None

    def to_activity(self) -> Activity:
        """Activity the adapter turns into the HTTP response for the invoke."""
        return Activity(type=ActivityTypes.invoke_response, value=InvokeResponse(status=self.status.value, body=self.body))


def create_empty_response() -> InvokeActionResult:
    return InvokeActionResult()


def create_status_response(status: InvokeStatus) -> InvokeActionResult:
    return InvokeActionResult(status=status)


def create_task_module_response(
    title: str,
    height: int,
    width: int,
    url: Optional[str] = None,
    card: Optional[Dict[str, Any]] = None,
) -> InvokeActionResult:
    """
    Task module "continue" response, showing either a web page or a card.

    Args:
        title: Task module title
        height: Height in pixels
        width: Width in pixels
        url: Page to load in the task module
        card: Adaptive card attachment dict to render instead of a page
    """
    task_info: Dict[str, Any] = {"title": title, "height": height, "width": width}
    if url is not None:
        task_info["url"] = url
    if card is not None:
        task_info["card"] = card
    return InvokeActionResult(body={"task": {"type": "continue", "value": task_info}})


def create_messaging_extension_result(attachments: List[Dict[str, Any]]) -> InvokeActionResult:
    return InvokeActionResult(body={
        "composeExtension": {
            "type": MessagingExtensionResultType.RESULT.value,
            "attachmentLayout": "list",
            "attachments": attachments,
        }
    })


def create_messaging_extension_message(text: str) -> InvokeActionResult:
    return InvokeActionResult(body={
        "composeExtension": {
            "type": MessagingExtensionResultType.MESSAGE.value,
            "text": text,
        }
    })


def create_messaging_extension_auth(sign_in_link: str, title: str) -> InvokeActionResult:
    """Ask Teams to show a sign-in link in the messaging extension pane."""
    return InvokeActionResult(body={
        "composeExtension": {
            "type": MessagingExtensionResultType.AUTH.value,
            "suggestedActions": {
                "actions": [
                    {"type": "openUrl", "value": sign_in_link, "title": title},
                ]
            },
        }
    })
