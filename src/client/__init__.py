"""Messaging client contract.

This module provides:
- MessagingClient: Protocol every client adapter implements
- EventEmitter: Base class adapters use to publish session events
- Data models for chats, messages, contacts and media
- create_client: Factory resolution from configuration
"""

from src.client.emitter import EventEmitter, EventHandler
from src.client.loader import create_client, load_client_factory
from src.client.models import (
    AccountInfo,
    Chat,
    Contact,
    GroupInfo,
    GroupMetadata,
    GroupParticipant,
    Media,
    Message,
    MessagePreview,
)
from src.client.protocol import MessagingClient

__all__ = [
    # Protocol
    "MessagingClient",
    "EventEmitter",
    "EventHandler",
    # Models
    "AccountInfo",
    "Chat",
    "Contact",
    "GroupInfo",
    "GroupMetadata",
    "GroupParticipant",
    "Media",
    "Message",
    "MessagePreview",
    # Factory
    "create_client",
    "load_client_factory",
]
