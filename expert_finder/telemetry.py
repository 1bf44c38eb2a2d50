"""
Simple telemetry module for tracking bot events.
Events are logged with their properties; the instrumentation key is only
forwarded to the web tab.
"""
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def track_event(event_name: str, properties: Optional[Dict[str, Any]] = None):
    """
    Track a custom telemetry event.

    Args:
        event_name: Name of the event to track
        properties: Optional properties/metadata for the event
    """
    logger.info(f"Telemetry Event: {event_name}", extra={"properties": properties or {}})


def activity_properties(activity) -> Dict[str, Any]:
    """Common user properties attached to bot events."""
    from_property = getattr(activity, "from_property", None)
    return {
        "User": getattr(from_property, "id", None),
        "AADObjectId": getattr(from_property, "aad_object_id", None),
    }
