"""Contract of the messaging client the gateway wraps.

The gateway never speaks the messaging protocol itself. Any adapter that
satisfies MessagingClient can be plugged in through configuration.
"""

from typing import Any, Protocol, runtime_checkable

from src.client.emitter import EventHandler
from src.client.models import (
    AccountInfo,
    Chat,
    Contact,
    GroupInfo,
    GroupMetadata,
    Media,
    Message,
)

# Lifecycle events consumed by the connection lifecycle manager
QR_EVENT = "qr"
READY_EVENT = "ready"
AUTHENTICATED_EVENT = "authenticated"
AUTH_FAILURE_EVENT = "auth_failure"
DISCONNECTED_EVENT = "disconnected"
CHANGE_STATE_EVENT = "change_state"
LOADING_SCREEN_EVENT = "loading_screen"

# Message events fanned out to webhooks
MESSAGE_EVENT = "message"
MESSAGE_CREATE_EVENT = "message_create"
MESSAGE_ACK_EVENT = "message_ack"
GROUP_JOIN_EVENT = "group_join"
GROUP_LEAVE_EVENT = "group_leave"
GROUP_UPDATE_EVENT = "group_update"


@runtime_checkable
class MessagingClient(Protocol):
    """A messaging session with an event stream and chat/message operations."""

    @property
    def info(self) -> AccountInfo | None:
        """Connected account, or None before the session is ready."""
        ...

    @property
    def is_running(self) -> bool:
        """Whether a live session (browser, socket) currently exists."""
        ...

    def on(self, event: str, handler: EventHandler) -> None: ...

    def off(self, event: str, handler: EventHandler) -> None: ...

    async def initialize(self) -> None:
        """Start the session; progress is reported through events."""
        ...

    async def destroy(self) -> None:
        """Tear down the live session."""
        ...

    async def get_state(self) -> str | None: ...

    # Chats

    async def get_chats(self) -> list[Chat]: ...

    async def get_chat(self, chat_id: str) -> Chat | None: ...

    async def get_group_metadata(self, chat_id: str) -> GroupMetadata: ...

    async def fetch_messages(
        self, chat_id: str, *, limit: int = 50, from_me: bool = False
    ) -> list[Message]: ...

    async def mute_chat(self, chat_id: str, duration_seconds: int) -> None: ...

    async def pin_chat(self, chat_id: str, pin: bool) -> None: ...

    async def mark_chat(self, chat_id: str, read: bool) -> None: ...

    async def archive_chat(self, chat_id: str, archive: bool) -> None: ...

    async def delete_chat(self, chat_id: str) -> None: ...

    async def get_contact(self, contact_id: str) -> Contact: ...

    async def create_group(self, name: str, participants: list[str]) -> GroupInfo: ...

    # Messages

    async def send_message(
        self,
        chat_id: str,
        content: str | Media,
        options: dict[str, Any] | None = None,
    ) -> Message: ...

    async def load_media(self, url: str) -> Media: ...

    async def get_message(self, message_id: str) -> Message | None: ...

    async def reply_to_message(
        self,
        message_id: str,
        content: str | Media,
        options: dict[str, Any] | None = None,
    ) -> Message: ...

    async def star_message(self, message_id: str, star: bool) -> None: ...

    async def delete_message(self, message_id: str, everyone: bool) -> None: ...

    async def react_to_message(self, message_id: str, reaction: str) -> None: ...

    async def download_media(self, message_id: str) -> Media | None: ...
