"""Webhook subscriptions and event fan-out.

This module provides:
- SubscriptionRegistry: In-memory URL-keyed subscriptions
- format_event_data: Normalization of client events into webhook payloads
- EventDispatcher: Best-effort delivery of client events to subscribers
"""

from src.webhooks.dispatcher import (
    DeliveryResult,
    EventDispatcher,
    get_event_dispatcher,
    set_event_dispatcher,
)
from src.webhooks.events import (
    SUBSCRIBABLE_EVENTS,
    EventEnvelope,
    WebhookEventType,
    create_envelope,
    format_event_data,
)
from src.webhooks.registry import (
    Subscription,
    SubscriptionRegistry,
    get_subscription_registry,
    set_subscription_registry,
    validate_subscription_input,
)

__all__ = [
    # Events
    "WebhookEventType",
    "SUBSCRIBABLE_EVENTS",
    "EventEnvelope",
    "create_envelope",
    "format_event_data",
    # Registry
    "Subscription",
    "SubscriptionRegistry",
    "get_subscription_registry",
    "set_subscription_registry",
    "validate_subscription_input",
    # Dispatcher
    "DeliveryResult",
    "EventDispatcher",
    "get_event_dispatcher",
    "set_event_dispatcher",
]
