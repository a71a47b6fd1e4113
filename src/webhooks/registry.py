"""Webhook subscription registry.

Subscriptions are keyed by callback URL and live in memory only.
Registering the same URL again replaces the previous entry.
"""

import threading
from typing import Any

import structlog
from pydantic import AnyUrl, BaseModel, Field, TypeAdapter, ValidationError

from src.errors import InvalidFormatError, InvalidInputError, SubscriptionNotFoundError

logger = structlog.get_logger(__name__)

_absolute_url = TypeAdapter(AnyUrl)


class Subscription(BaseModel):
    """A registered webhook subscription."""

    url: str = Field(..., description="Callback URL, unique per subscription")
    events: list[str] = Field(..., description="Event kinds delivered to the URL")
    secret: str = Field(
        ...,
        description="Bearer token sent with every delivery",
        repr=False,
    )

    def wants(self, event: str) -> bool:
        """Check if this subscription should receive an event kind."""
        return event in self.events

    def to_public_dict(self) -> dict[str, Any]:
        """Listing shape; the secret is write-only and never included."""
        return {"url": self.url, "events": list(self.events)}


def validate_subscription_input(url: Any, events: Any, secret: Any) -> None:
    """Validate raw registration input.

    A present but unparseable URL is reported as a format error before the
    other fields are looked at.

    Raises:
        InvalidInputError: If a field is missing or events is not a non-empty list.
        InvalidFormatError: If the URL does not parse as an absolute URL.
    """
    if not url:
        raise InvalidInputError("Missing required fields: url, events, secret")

    if not isinstance(url, str):
        raise InvalidInputError("Field url must be a string")

    try:
        _absolute_url.validate_python(url)
    except ValidationError as e:
        raise InvalidFormatError("Invalid URL format", detail=url) from e

    if not events or not secret:
        raise InvalidInputError("Missing required fields: url, events, secret")

    if not isinstance(events, list):
        raise InvalidInputError("Events must be a non-empty array")

    if not isinstance(secret, str):
        raise InvalidInputError("Field secret must be a string")


# Global registry instance
_subscription_registry: "SubscriptionRegistry | None" = None


class SubscriptionRegistry:
    """In-memory map of callback URL to subscription.

    Individual register/remove/snapshot operations are atomic with respect
    to each other; iteration always works on a snapshot.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = threading.Lock()
        self._logger = logger.bind(component="subscription_registry")

    def register(self, url: Any, events: Any, secret: Any) -> Subscription:
        """Create or replace the subscription for ``url``.

        Args:
            url: Absolute callback URL.
            events: Non-empty list of event kinds.
            secret: Bearer token for deliveries.

        Returns:
            The stored subscription.

        Raises:
            InvalidInputError: If required fields are missing or malformed.
            InvalidFormatError: If the URL is not a valid absolute URL.
        """
        validate_subscription_input(url, events, secret)

        subscription = Subscription(
            url=url,
            events=[str(event) for event in events],
            secret=secret,
        )

        with self._lock:
            replaced = url in self._subscriptions
            self._subscriptions[url] = subscription

        self._logger.info(
            "subscription_registered",
            url=url,
            events=subscription.events,
            replaced=replaced,
        )

        return subscription

    def get(self, url: str) -> Subscription | None:
        """Get a subscription by URL."""
        with self._lock:
            return self._subscriptions.get(url)

    def list_all(self) -> list[Subscription]:
        """List subscriptions in registration order."""
        with self._lock:
            return list(self._subscriptions.values())

    def remove(self, url: str) -> None:
        """Delete the subscription for ``url``.

        Raises:
            SubscriptionNotFoundError: If no subscription exists for the URL.
        """
        with self._lock:
            removed = self._subscriptions.pop(url, None)

        if removed is None:
            raise SubscriptionNotFoundError(url)

        self._logger.info("subscription_removed", url=url)

    def subscribers_for(self, event: str) -> list[Subscription]:
        """Snapshot of subscriptions that want ``event``."""
        return [s for s in self.list_all() if s.wants(event)]

    def clear(self) -> None:
        """Remove every subscription."""
        with self._lock:
            self._subscriptions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)


def get_subscription_registry() -> SubscriptionRegistry:
    """Get the global subscription registry instance.

    Returns:
        Singleton SubscriptionRegistry.
    """
    global _subscription_registry
    if _subscription_registry is None:
        _subscription_registry = SubscriptionRegistry()
    return _subscription_registry


def set_subscription_registry(registry: SubscriptionRegistry) -> None:
    """Set the global subscription registry instance.

    Useful for testing.

    Args:
        registry: SubscriptionRegistry instance.
    """
    global _subscription_registry
    _subscription_registry = registry
