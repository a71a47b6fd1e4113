"""Webhook event dispatcher.

Bridges the messaging client's event stream to the subscription registry.
Every delivery is a single best-effort POST; failures are logged and
never retried.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from src.client.protocol import MessagingClient
from src.webhooks.events import SUBSCRIBABLE_EVENTS, EventEnvelope, create_envelope
from src.webhooks.registry import (
    Subscription,
    SubscriptionRegistry,
    get_subscription_registry,
)

logger = structlog.get_logger(__name__)


@dataclass
class DeliveryResult:
    """Outcome of one POST to one subscriber."""

    url: str
    event: str
    success: bool
    status_code: int | None = None
    error: str | None = None


# Global dispatcher instance
_event_dispatcher: "EventDispatcher | None" = None


class EventDispatcher:
    """Fans client events out to subscribed webhooks.

    Features:
    - Subscribes once to the message and group event kinds of a client
    - Concurrent fan-out bounded by a semaphore
    - Bearer-token authenticated JSON POST per subscriber
    - Failures contained and logged per subscriber
    """

    def __init__(
        self,
        registry: SubscriptionRegistry | None = None,
        *,
        delivery_timeout: float = 10.0,
        max_concurrent_deliveries: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Subscription registry (uses global if not provided).
            delivery_timeout: HTTP request timeout in seconds.
            max_concurrent_deliveries: Max concurrent delivery requests.
            transport: Optional httpx transport for outbound requests.
        """
        self._registry = registry if registry is not None else get_subscription_registry()
        self._delivery_timeout = delivery_timeout
        self._transport = transport
        self._semaphore = asyncio.Semaphore(max_concurrent_deliveries)
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._attached: MessagingClient | None = None
        self._logger = logger.bind(component="event_dispatcher")

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def pending_deliveries(self) -> int:
        """Number of publish tasks still in flight."""
        return len(self._background_tasks)

    def attach(self, client: MessagingClient) -> None:
        """Subscribe to the client's webhook-relevant events.

        Calling again with the same client is a no-op, so a client never
        ends up with duplicate delivery handlers.

        Args:
            client: Messaging client to listen to.
        """
        if self._attached is client:
            return
        if self._attached is not None:
            raise RuntimeError("EventDispatcher is already attached to a client")

        for event in SUBSCRIBABLE_EVENTS:
            client.on(event, self._make_handler(event))

        self._attached = client
        self._logger.info("dispatcher_attached", events=list(SUBSCRIBABLE_EVENTS))

    def _make_handler(self, event: str):
        def handler(*args: Any) -> None:
            self.schedule(event, *args)

        return handler

    def schedule(self, event: str, *args: Any) -> asyncio.Task[list[DeliveryResult]]:
        """Publish an event in the background.

        Args:
            event: Event kind.
            *args: Raw event arguments from the client.

        Returns:
            The tracked publish task.
        """
        task = asyncio.get_running_loop().create_task(self.publish(event, *args))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def publish(self, event: str, *args: Any) -> list[DeliveryResult]:
        """Deliver an event to every subscription that wants it.

        Args:
            event: Event kind.
            *args: Raw event arguments from the client.

        Returns:
            One result per matching subscription.
        """
        subscriptions = self._registry.subscribers_for(event)
        if not subscriptions:
            self._logger.debug("no_subscribers", event_type=event)
            return []

        envelope = create_envelope(event, *args)

        results = await asyncio.gather(
            *(self._deliver(subscription, envelope) for subscription in subscriptions)
        )

        self._logger.info(
            "event_dispatched",
            event_type=event,
            subscriber_count=len(subscriptions),
            delivered=sum(1 for r in results if r.success),
        )

        return list(results)

    async def _deliver(
        self,
        subscription: Subscription,
        envelope: EventEnvelope,
    ) -> DeliveryResult:
        """Make the single delivery attempt for one subscriber.

        Args:
            subscription: Target subscription.
            envelope: Event envelope to POST.

        Returns:
            Delivery outcome; never raises.
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {subscription.secret}",
        }

        try:
            async with self._semaphore:
                async with httpx.AsyncClient(
                    timeout=self._delivery_timeout, transport=self._transport
                ) as client:
                    response = await client.post(
                        subscription.url,
                        json=envelope.to_json_dict(),
                        headers=headers,
                    )

            if response.is_success:
                self._logger.info(
                    "delivery_success",
                    url=subscription.url,
                    event_type=envelope.event,
                    status_code=response.status_code,
                )
                return DeliveryResult(
                    url=subscription.url,
                    event=envelope.event,
                    success=True,
                    status_code=response.status_code,
                )

            self._logger.warning(
                "delivery_non_success_response",
                url=subscription.url,
                event_type=envelope.event,
                status_code=response.status_code,
            )
            return DeliveryResult(
                url=subscription.url,
                event=envelope.event,
                success=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )

        except httpx.TimeoutException:
            self._logger.warning(
                "delivery_timeout",
                url=subscription.url,
                event_type=envelope.event,
                timeout=self._delivery_timeout,
            )
            return DeliveryResult(
                url=subscription.url,
                event=envelope.event,
                success=False,
                error="Request timeout",
            )

        except Exception as e:
            self._logger.warning(
                "delivery_error",
                url=subscription.url,
                event_type=envelope.event,
                error=str(e),
            )
            return DeliveryResult(
                url=subscription.url,
                event=envelope.event,
                success=False,
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait for all in-flight publish tasks to finish."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def shutdown(self, timeout: float | None = None) -> None:
        """Wait for in-flight deliveries, cancelling any left after ``timeout``.

        Args:
            timeout: Seconds to wait (defaults to the delivery timeout).
        """
        pending = list(self._background_tasks)
        if pending:
            wait_for = self._delivery_timeout if timeout is None else timeout
            _, still_running = await asyncio.wait(pending, timeout=wait_for)
            for task in still_running:
                task.cancel()
            if still_running:
                await asyncio.gather(*still_running, return_exceptions=True)
        self._background_tasks.clear()
        self._logger.info("dispatcher_shutdown", drained=len(pending))


def get_event_dispatcher() -> EventDispatcher:
    """Get the global event dispatcher instance.

    Returns:
        Singleton EventDispatcher.
    """
    global _event_dispatcher
    if _event_dispatcher is None:
        _event_dispatcher = EventDispatcher()
    return _event_dispatcher


def set_event_dispatcher(dispatcher: EventDispatcher) -> None:
    """Set the global event dispatcher instance.

    Useful for testing.

    Args:
        dispatcher: EventDispatcher instance.
    """
    global _event_dispatcher
    _event_dispatcher = dispatcher
