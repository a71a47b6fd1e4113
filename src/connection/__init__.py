"""Messaging session lifecycle.

This module provides:
- ConnectionState: Flags of the current session and their transitions
- ConnectionLifecycleManager: Initialization, QR pairing and reconnection
- qr_to_data_url: QR payload rendering for the pairing page
"""

from src.connection.lifecycle import (
    ConnectionLifecycleManager,
    get_lifecycle_manager,
    set_lifecycle_manager,
)
from src.connection.qr import qr_to_data_url
from src.connection.state import ConnectionPhase, ConnectionState

__all__ = [
    # State
    "ConnectionPhase",
    "ConnectionState",
    # Lifecycle
    "ConnectionLifecycleManager",
    "get_lifecycle_manager",
    "set_lifecycle_manager",
    # Rendering
    "qr_to_data_url",
]
