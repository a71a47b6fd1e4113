"""Data models exchanged with the messaging client.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON the REST API returns.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ClientModel(BaseModel):
    """Base model serializing to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys."""
        return self.model_dump(by_alias=True)


class MessagePreview(ClientModel):
    """Last message shown in a chat listing."""

    body: str = ""
    timestamp: int | None = None


class Chat(ClientModel):
    """A one-to-one or group conversation."""

    id: str
    name: str = ""
    is_group: bool = False
    timestamp: int | None = None
    unread_count: int = 0
    last_message: MessagePreview | None = None
    pinned: bool = False
    mute_expiration: int = 0
    is_read_only: bool = False
    is_muted: bool = False


class GroupParticipant(ClientModel):
    """Member of a group chat."""

    id: str
    is_admin: bool = False
    is_super_admin: bool = False


class GroupMetadata(ClientModel):
    """Extra information available for group chats."""

    owner: str | None = None
    participants: list[GroupParticipant] = Field(default_factory=list)
    description: str | None = None
    created_at: int | None = None


class GroupInfo(ClientModel):
    """Result of creating a group."""

    id: str
    name: str
    owner: str
    creation: int | None = None


class Contact(ClientModel):
    """A phone-number contact as known to the messaging network."""

    id: str
    exists: bool = False
    pushname: str | None = None
    number: str | None = None


class Message(ClientModel):
    """A message in a chat."""

    id: str
    body: str = ""
    timestamp: int | None = None
    from_: str = Field(default="", alias="from")
    to: str = ""
    has_media: bool = False
    type: str = "chat"
    is_forwarded: bool = False
    forwarding_score: int = 0
    is_status: bool = False
    is_starred: bool = False
    broadcast: bool = False
    from_me: bool = False
    has_quoted_msg: bool = False
    v_cards: list[str] = Field(default_factory=list, alias="vCards")
    mentioned_ids: list[str] = Field(default_factory=list)
    links: list[dict[str, Any]] = Field(default_factory=list)


class Media(ClientModel):
    """Media attachment, base64-encoded."""

    mimetype: str
    data: str
    filename: str | None = None


class AccountInfo(ClientModel):
    """Information about the connected account."""

    me: str
    pushname: str | None = None
    wid: str
    platform: str | None = None
