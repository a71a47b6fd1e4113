"""Chat API endpoints.

Provides REST API for listing, opening and managing chats. The chat id
``me`` (or ``self``) addresses the connected account's own chat.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Query

from src.api.dependencies import require_client
from src.client.models import Chat
from src.client.protocol import MessagingClient
from src.errors import (
    ClientNotReadyError,
    InvalidInputError,
    NotFoundError,
    upstream_errors,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/chats", tags=["Chats"])

SELF_CHAT_ALIASES = ("me", "self")
CONTACT_SUFFIX = "@c.us"
DEFAULT_MUTE_SECONDS = 8 * 60 * 60


def to_contact_id(phone: str) -> str:
    """Append the contact suffix to a bare phone number."""
    return phone if CONTACT_SUFFIX in phone else f"{phone}{CONTACT_SUFFIX}"


def resolve_chat_id(client: MessagingClient, chat_id: str) -> str:
    """Map ``me``/``self`` to the account's own chat id.

    Raises:
        ClientNotReadyError: If the account is not known yet.
    """
    if chat_id not in SELF_CHAT_ALIASES:
        return chat_id
    info = client.info
    if info is None:
        raise ClientNotReadyError("WhatsApp client not ready")
    return info.wid


async def _get_chat_or_404(client: MessagingClient, chat_id: str) -> Chat:
    target = resolve_chat_id(client, chat_id)
    with upstream_errors("Failed to load chat"):
        chat = await client.get_chat(target)
    if chat is None:
        raise NotFoundError("Chat not found", detail=target)
    return chat


# ============================================================================
# Endpoints
# ============================================================================


@router.get("")
async def list_chats(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    client: MessagingClient = Depends(require_client),
) -> list[dict[str, Any]]:
    """List chats, optionally only those with unread messages."""
    with upstream_errors("Failed to list chats"):
        chats = await client.get_chats()

    if unread_only:
        chats = [chat for chat in chats if chat.unread_count > 0]

    return [chat.to_wire() for chat in chats]


@router.post(
    "/new",
    responses={
        400: {"description": "Phone number is required"},
        404: {"description": "Phone number not registered"},
    },
)
async def start_chat(
    phone: str | None = Body(default=None, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Open a chat with a phone number registered on the network."""
    if not phone:
        raise InvalidInputError("Phone number is required")

    contact_id = to_contact_id(phone)
    with upstream_errors("Failed to start chat"):
        chat = await client.get_chat(contact_id)
        contact = await client.get_contact(contact_id)

    if not contact.exists:
        raise NotFoundError("Phone number not registered on WhatsApp", detail=phone)

    return {
        "id": chat.id if chat else contact_id,
        "name": chat.name if chat else None,
        "exists": contact.exists,
        "pushname": contact.pushname,
        "number": contact.number,
    }


@router.post(
    "/group",
    responses={
        400: {"description": "Group name and at least one participant are required"},
    },
)
async def create_group(
    name: str | None = Body(default=None),
    participants: Any = Body(default=None),
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Create a group with the given participants."""
    if not name or not isinstance(participants, list) or not participants:
        raise InvalidInputError("Group name and at least one participant are required")

    members = [to_contact_id(str(p)) for p in participants]
    with upstream_errors("Failed to create group"):
        group = await client.create_group(name, members)

    logger.info("group_created", group_id=group.id, participant_count=len(members))
    return group.to_wire()


@router.get(
    "/{chat_id}",
    responses={404: {"description": "Chat not found"}},
)
async def get_chat(
    chat_id: str,
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Chat details, with group metadata for group chats."""
    chat = await _get_chat_or_404(client, chat_id)
    response = chat.to_wire()
    response.pop("lastMessage", None)

    if chat.is_group:
        with upstream_errors("Failed to load group metadata"):
            metadata = await client.get_group_metadata(chat.id)
        response["groupMetadata"] = metadata.to_wire()

    return response


@router.get(
    "/{chat_id}/messages",
    responses={404: {"description": "Chat not found"}},
)
async def list_chat_messages(
    chat_id: str,
    limit: int = Query(default=50, ge=1),
    from_me: bool = Query(default=False, alias="fromMe"),
    client: MessagingClient = Depends(require_client),
) -> list[dict[str, Any]]:
    """Recent messages of a chat."""
    chat = await _get_chat_or_404(client, chat_id)
    with upstream_errors("Failed to fetch messages"):
        messages = await client.fetch_messages(chat.id, limit=limit, from_me=from_me)
    return [message.to_wire() for message in messages]


@router.post("/{chat_id}/mute", responses={404: {"description": "Chat not found"}})
async def mute_chat(
    chat_id: str,
    duration: int = Body(default=DEFAULT_MUTE_SECONDS, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Mute a chat for ``duration`` seconds (8 hours by default)."""
    chat = await _get_chat_or_404(client, chat_id)
    with upstream_errors("Failed to mute chat"):
        await client.mute_chat(chat.id, duration)
    return {"message": f"Chat muted for {duration} seconds"}


@router.post("/{chat_id}/pin", responses={404: {"description": "Chat not found"}})
async def pin_chat(
    chat_id: str,
    pin: bool = Body(default=True, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Pin or unpin a chat."""
    chat = await _get_chat_or_404(client, chat_id)
    with upstream_errors("Failed to pin chat"):
        await client.pin_chat(chat.id, pin)
    return {"message": f"Chat {'pinned' if pin else 'unpinned'} successfully"}


@router.post("/{chat_id}/mark", responses={404: {"description": "Chat not found"}})
async def mark_chat(
    chat_id: str,
    read: bool = Body(default=True, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Mark a chat as read or unread."""
    chat = await _get_chat_or_404(client, chat_id)
    with upstream_errors("Failed to mark chat"):
        await client.mark_chat(chat.id, read)
    return {"message": f"Chat marked as {'read' if read else 'unread'}"}


@router.post("/{chat_id}/archive", responses={404: {"description": "Chat not found"}})
async def archive_chat(
    chat_id: str,
    archive: bool = Body(default=True, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Archive or unarchive a chat."""
    chat = await _get_chat_or_404(client, chat_id)
    with upstream_errors("Failed to archive chat"):
        await client.archive_chat(chat.id, archive)
    return {"message": f"Chat {'archived' if archive else 'unarchived'} successfully"}


@router.delete("/{chat_id}", responses={404: {"description": "Chat not found"}})
async def delete_chat(
    chat_id: str,
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Delete a chat."""
    chat = await _get_chat_or_404(client, chat_id)
    with upstream_errors("Failed to delete chat"):
        await client.delete_chat(chat.id)
    logger.info("chat_deleted", chat_id=chat.id)
    return {"message": "Chat deleted successfully"}
