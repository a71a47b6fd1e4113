"""Shared FastAPI dependencies."""

from fastapi import Depends

from src.client.protocol import MessagingClient
from src.connection.lifecycle import ConnectionLifecycleManager, get_lifecycle_manager
from src.errors import ConfigurationError


def require_lifecycle_manager() -> ConnectionLifecycleManager:
    """Resolve the lifecycle manager set up at startup.

    Raises:
        ConfigurationError: If no messaging client has been configured.
    """
    manager = get_lifecycle_manager()
    if manager is None:
        raise ConfigurationError(
            "Messaging client not configured",
            detail="Set MESSAGING_CLIENT to 'module:factory'",
        )
    return manager


def require_client(
    manager: ConnectionLifecycleManager = Depends(require_lifecycle_manager),
) -> MessagingClient:
    """Resolve the messaging client owned by the lifecycle manager."""
    return manager.client
