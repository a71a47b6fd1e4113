"""Webhook event kinds, payload normalization and the delivery envelope.

The messaging client emits heterogeneous arguments per event kind. This
module turns them into the stable shape external systems receive.
"""

import time
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic_core import to_jsonable_python


class WebhookEventType(str, Enum):
    """Event kinds a subscription can ask for.

    - message: Message received from someone else
    - message_create: Any message created, including ones sent by this account
    - message_ack: Delivery/read receipt changed
    - group_*: Group membership and metadata changes
    """

    MESSAGE = "message"
    MESSAGE_CREATE = "message_create"
    MESSAGE_ACK = "message_ack"
    GROUP_JOIN = "group_join"
    GROUP_LEAVE = "group_leave"
    GROUP_UPDATE = "group_update"


SUBSCRIBABLE_EVENTS: tuple[str, ...] = tuple(e.value for e in WebhookEventType)


def _read(source: Any, *names: str, default: Any = None) -> Any:
    """Read the first present attribute or key from ``names``."""
    for name in names:
        if isinstance(source, Mapping):
            if name in source:
                return source[name]
        elif hasattr(source, name):
            return getattr(source, name)
    return default


def _format_message(message: Any) -> dict[str, Any]:
    return {
        "id": _read(message, "id"),
        "body": _read(message, "body"),
        "from": _read(message, "from_", "from"),
        "to": _read(message, "to"),
        "timestamp": _read(message, "timestamp"),
        "type": _read(message, "type"),
        "hasMedia": _read(message, "has_media", "hasMedia"),
    }


def format_event_data(event: str, *args: Any, now: float | None = None) -> Any:
    """Normalize raw client event arguments into the webhook data shape.

    Never raises: unknown kinds, and kinds without a normalized shape,
    fall through to the raw argument list.

    Args:
        event: Event kind emitted by the client.
        *args: Raw event arguments.
        now: Dispatch time in seconds since the epoch (defaults to now).

    Returns:
        Normalized payload for the envelope's ``data`` field.
    """
    if event in (WebhookEventType.MESSAGE, WebhookEventType.MESSAGE_CREATE) and args:
        return _format_message(args[0])

    if event == WebhookEventType.MESSAGE_ACK and args:
        ack_message = args[0]
        ack = args[1] if len(args) > 1 else None
        dispatched_at = time.time() if now is None else now
        return {
            "id": _read(ack_message, "id"),
            "ack": ack,
            "timestamp": int(dispatched_at * 1000),
        }

    return list(args)


def _jsonable_fallback(value: Any) -> Any:
    """Serialize client objects that pydantic does not know about."""
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        return {k: v for k, v in attributes.items() if not k.startswith("_")}
    return str(value)


class EventEnvelope(BaseModel):
    """Body POSTed to every matching webhook."""

    event: str = Field(..., description="Event kind")
    data: Any = Field(default=None, description="Normalized event payload")

    def to_json_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "event": self.event,
            "data": to_jsonable_python(
                self.data, by_alias=True, fallback=_jsonable_fallback
            ),
        }


def create_envelope(event: str, *args: Any, now: float | None = None) -> EventEnvelope:
    """Build the envelope for one client event.

    Args:
        event: Event kind.
        *args: Raw event arguments.
        now: Optional dispatch time override.

    Returns:
        EventEnvelope ready for delivery.
    """
    return EventEnvelope(event=event, data=format_event_data(event, *args, now=now))
