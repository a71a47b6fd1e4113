"""Message API endpoints.

Provides REST API for sending, listing, replying to, starring, reacting
to, deleting and downloading messages.
"""

import base64
import binascii
from urllib.parse import quote
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from src.api.dependencies import require_client
from src.client.models import Media, Message
from src.client.protocol import MessagingClient
from src.errors import (
    InvalidInputError,
    NotFoundError,
    UpstreamFailureError,
    upstream_errors,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])

DEFAULT_ATTACHMENT_NAME = "attachment"


# ============================================================================
# Request Models
# ============================================================================


class SendMessageRequest(BaseModel):
    """Request to send a text or media message."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"chatId": "15551234567@c.us", "message": "Hello"},
                {
                    "chatId": "15551234567@c.us",
                    "message": "Caption",
                    "mediaUrl": "https://example.com/image.png",
                },
            ]
        },
    )

    chat_id: str | None = Field(default=None, alias="chatId")
    message: str | None = Field(default=None, description="Text, or caption for media")
    media_url: str | None = Field(default=None, alias="mediaUrl")
    options: dict[str, Any] | None = Field(
        default=None, description="Client send options (sendAsDocument, sendAsVoice, ...)"
    )


class ReplyRequest(BaseModel):
    """Reply to the message in the path."""

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    media_url: str | None = Field(default=None, alias="mediaUrl")


class QuoteRequest(BaseModel):
    """Reply or quote by message id in the body."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str | None = Field(default=None, alias="messageId")
    body: str | None = None


# ============================================================================
# Helpers
# ============================================================================


async def _load_media(client: MessagingClient, url: str) -> Media:
    try:
        return await client.load_media(url)
    except Exception as e:
        logger.warning("media_load_failed", url=url, error=str(e))
        raise InvalidInputError("Failed to load media from URL", detail=str(e)) from e


async def _get_message_or_404(
    client: MessagingClient,
    message_id: str,
    error: str = "Message not found",
) -> Message:
    with upstream_errors("Failed to load message"):
        message = await client.get_message(message_id)
    if message is None:
        raise NotFoundError(error, detail=message_id)
    return message


def content_disposition(filename: str | None) -> str:
    """Attachment header safe for quotes and non-latin-1 file names.

    The plain ``filename`` parameter carries an ASCII fallback; the original
    name travels percent-encoded in ``filename*`` (RFC 5987).
    """
    name = filename or DEFAULT_ATTACHMENT_NAME
    fallback = "".join(
        ch if ch.isascii() and ch.isprintable() and ch not in '"\\' else "_" for ch in name
    )
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(name, safe="")}'


def _chat_id_of(message: Message) -> str:
    return message.to if message.from_me else message.from_


def _require_reply_fields(request: QuoteRequest) -> tuple[str, str]:
    if not request.message_id or not request.body:
        raise InvalidInputError("Missing required fields: messageId, body")
    return request.message_id, request.body


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    responses={400: {"description": "Missing parameters or unloadable media"}},
)
async def send_message(
    request: SendMessageRequest,
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Send a text message, or a media message with an optional caption."""
    if not request.chat_id or (not request.message and not request.media_url):
        raise InvalidInputError("Missing required parameters")

    options = dict(request.options or {})

    if request.media_url:
        content: str | Media = await _load_media(client, request.media_url)
        send_as_document = bool(options.pop("sendAsDocument", False))
        send_as_voice = bool(options.pop("sendAsVoice", False))
        options = {
            **options,
            "caption": request.message,
            "sendMediaAsDocument": send_as_document,
            "sendAudioAsVoice": send_as_voice,
        }
    else:
        content = request.message or ""

    with upstream_errors("Failed to send message"):
        result = await client.send_message(request.chat_id, content, options or None)

    logger.info("message_sent", chat_id=request.chat_id, message_id=result.id)
    return {
        "messageId": result.id,
        "timestamp": result.timestamp,
        "status": "sent",
        "from": result.from_,
        "to": result.to,
    }


@router.get(
    "",
    responses={
        400: {"description": "Chat ID is required"},
        404: {"description": "Chat not found"},
    },
)
async def list_messages(
    chat_id: str | None = Query(default=None, alias="chatId"),
    limit: int = Query(default=50, ge=1),
    from_me: bool = Query(default=False, alias="fromMe"),
    client: MessagingClient = Depends(require_client),
) -> list[dict[str, Any]]:
    """Recent messages of a chat."""
    if not chat_id:
        raise InvalidInputError("Chat ID is required")

    with upstream_errors("Failed to fetch messages"):
        chat = await client.get_chat(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found", detail=chat_id)
        messages = await client.fetch_messages(chat_id, limit=limit, from_me=from_me)

    return [message.to_wire() for message in messages]


@router.post(
    "/reply",
    responses={
        400: {"description": "Missing required fields"},
        404: {"description": "Message not found"},
    },
)
async def reply_by_id(
    request: QuoteRequest,
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Reply to a message given its id in the body."""
    message_id, body = _require_reply_fields(request)
    await _get_message_or_404(client, message_id)

    try:
        reply = await client.reply_to_message(message_id, body)
    except Exception as e:
        logger.error("reply_failed", message_id=message_id, error=str(e))
        raise UpstreamFailureError("Failed to send reply", detail=str(e)) from e

    logger.info("reply_sent", message_id=message_id)
    return {
        "success": True,
        "messageId": reply.id,
        "timestamp": reply.timestamp,
        "from": reply.from_,
        "to": reply.to,
    }


@router.post(
    "/quote",
    responses={
        400: {"description": "Missing required fields"},
        404: {"description": "Message not found"},
    },
)
async def quote_message(
    request: QuoteRequest,
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Send a message to the quoted message's chat, quoting it."""
    message_id, body = _require_reply_fields(request)
    quoted = await _get_message_or_404(client, message_id)

    try:
        reply = await client.send_message(
            _chat_id_of(quoted), body, {"quotedMessageId": message_id}
        )
    except Exception as e:
        logger.error("quote_reply_failed", message_id=message_id, error=str(e))
        raise UpstreamFailureError("Failed to send quote reply", detail=str(e)) from e

    logger.info("quote_reply_sent", message_id=message_id)
    return {
        "success": True,
        "messageId": reply.id,
        "timestamp": reply.timestamp,
        "from": reply.from_,
        "to": reply.to,
        "quotedMessageId": message_id,
    }


@router.post(
    "/{message_id}/reply",
    responses={
        400: {"description": "Message or media URL is required"},
        404: {"description": "Quoted message not found"},
    },
)
async def reply_to_message(
    message_id: str,
    request: ReplyRequest,
    client: MessagingClient = Depends(require_client),
) -> dict[str, Any]:
    """Reply to a message with text or media."""
    if not request.message and not request.media_url:
        raise InvalidInputError("Message or media URL is required")

    await _get_message_or_404(client, message_id, "Quoted message not found")

    options: dict[str, Any] = {"quotedMessageId": message_id}
    if request.media_url:
        content: str | Media = await _load_media(client, request.media_url)
        options["caption"] = request.message
    else:
        content = request.message or ""

    with upstream_errors("Failed to send reply"):
        result = await client.reply_to_message(message_id, content, options)

    return {"messageId": result.id, "timestamp": result.timestamp, "status": "sent"}


@router.post("/{message_id}/star", responses={404: {"description": "Message not found"}})
async def star_message(
    message_id: str,
    star: bool = Body(default=True, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Star or unstar a message."""
    await _get_message_or_404(client, message_id)
    with upstream_errors("Failed to star message"):
        await client.star_message(message_id, star)
    return {"message": f"Message {'starred' if star else 'unstarred'} successfully"}


@router.post(
    "/{message_id}/react",
    responses={
        400: {"description": "Reaction emoji is required"},
        404: {"description": "Message not found"},
    },
)
async def react_to_message(
    message_id: str,
    reaction: str | None = Body(default=None, embed=True),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """React to a message with an emoji."""
    if not reaction:
        raise InvalidInputError("Reaction emoji is required")

    await _get_message_or_404(client, message_id)
    with upstream_errors("Failed to react to message"):
        await client.react_to_message(message_id, reaction)
    return {"message": "Reaction added successfully"}


@router.delete("/{message_id}", responses={404: {"description": "Message not found"}})
async def delete_message(
    message_id: str,
    everyone: bool = Query(default=False),
    client: MessagingClient = Depends(require_client),
) -> dict[str, str]:
    """Delete a message, for everyone if requested."""
    await _get_message_or_404(client, message_id)
    with upstream_errors("Failed to delete message"):
        await client.delete_message(message_id, everyone)
    logger.info("message_deleted", message_id=message_id, everyone=everyone)
    return {"message": "Message deleted successfully"}


@router.get(
    "/{message_id}/media",
    response_class=Response,
    responses={
        200: {"description": "Media file"},
        400: {"description": "Message has no media attachment"},
        404: {"description": "Message or media not found"},
    },
)
async def download_media(
    message_id: str,
    client: MessagingClient = Depends(require_client),
) -> Response:
    """Download the media attached to a message."""
    message = await _get_message_or_404(client, message_id)
    if not message.has_media:
        raise InvalidInputError("Message has no media attachment")

    try:
        media = await client.download_media(message_id)
    except Exception as e:
        logger.error("media_download_failed", message_id=message_id, error=str(e))
        raise UpstreamFailureError("Failed to download media", detail=str(e)) from e

    if media is None:
        raise NotFoundError("Media not found or expired", detail=message_id)

    try:
        content = base64.b64decode(media.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UpstreamFailureError("Failed to download media", detail=str(e)) from e

    return Response(
        content=content,
        media_type=media.mimetype,
        headers={"Content-Disposition": content_disposition(media.filename)},
    )
