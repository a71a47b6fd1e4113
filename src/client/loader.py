"""Resolve the configured messaging client factory."""

import importlib
from collections.abc import Callable

import structlog

from src.client.protocol import MessagingClient
from src.config import Settings
from src.errors import ConfigurationError

logger = structlog.get_logger(__name__)

ClientFactory = Callable[[Settings], MessagingClient]


def load_client_factory(path: str | None) -> ClientFactory:
    """Import a ``module:attribute`` client factory.

    Args:
        path: Import path, e.g. ``"wwebjs_adapter.client:create_client"``.

    Returns:
        The factory callable.

    Raises:
        ConfigurationError: If the path is empty, malformed or unimportable.
    """
    if not path:
        raise ConfigurationError(
            "No messaging client configured",
            detail="Set MESSAGING_CLIENT to 'module:factory'",
        )

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            "Invalid MESSAGING_CLIENT value",
            detail=f"Expected 'module:factory', got {path!r}",
        )

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            "Cannot load messaging client factory", detail=str(e)
        ) from e

    if not callable(factory):
        raise ConfigurationError(
            "Messaging client factory is not callable", detail=path
        )

    logger.debug("client_factory_loaded", path=path)
    return factory


def create_client(settings: Settings) -> MessagingClient:
    """Build the messaging client described by ``settings``."""
    factory = load_client_factory(settings.MESSAGING_CLIENT)
    client = factory(settings)
    logger.info(
        "messaging_client_created",
        client_type=type(client).__name__,
        client_id=settings.CLIENT_ID,
    )
    return client
