"""Connection lifecycle manager.

Drives the messaging client through initialization, QR pairing,
authentication and bounded-retry reconnection:

    UNINITIALIZED / DISCONNECTED --initialize()--> INITIALIZING
    INITIALIZING --qr--> QR_PENDING
    INITIALIZING / QR_PENDING --ready/authenticated--> AUTHENTICATED
    AUTHENTICATED --disconnected--> DISCONNECTED (+ one delayed reconnect)

Client listeners are registered once. Each initialize() call waits on a
single pending future that the listeners resolve or reject.
"""

import asyncio
from typing import Any

import structlog

from src.client.protocol import (
    AUTH_FAILURE_EVENT,
    AUTHENTICATED_EVENT,
    CHANGE_STATE_EVENT,
    DISCONNECTED_EVENT,
    LOADING_SCREEN_EVENT,
    QR_EVENT,
    READY_EVENT,
    MessagingClient,
)
from src.connection.state import ConnectionPhase, ConnectionState
from src.errors import (
    AuthenticationFailedError,
    GatewayError,
    InitializationFailedError,
    InitializationInProgressError,
    InitializationTimeoutError,
    RetriesExhaustedError,
)

logger = structlog.get_logger(__name__)

CONNECTED_STATE = "CONNECTED"
DISCONNECTED_STATE = "DISCONNECTED"

# Global lifecycle manager instance
_lifecycle_manager: "ConnectionLifecycleManager | None" = None


class ConnectionLifecycleManager:
    """Owns the messaging client and its connection state.

    Example:
        manager = ConnectionLifecycleManager(client)
        qr = await manager.initialize()
        if qr is None:
            ...  # session restored, no pairing needed
    """

    def __init__(
        self,
        client: MessagingClient,
        *,
        state: ConnectionState | None = None,
        max_retries: int = 5,
        retry_delay: float = 10.0,
        init_timeout: float = 120.0,
    ) -> None:
        """Initialize the manager and subscribe to the client's lifecycle events.

        Args:
            client: Messaging client to drive.
            state: Initial connection state (fresh state if not provided).
            max_retries: Initialization attempts allowed without a successful login.
            retry_delay: Seconds to wait before reconnecting after a disconnect.
            init_timeout: Upper bound on one initialization attempt, in seconds.
        """
        self._client = client
        self._state = state or ConnectionState()
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._init_timeout = init_timeout

        self._pending: asyncio.Future[str | None] | None = None
        self._busy = False
        self._start_task: asyncio.Task[None] | None = None
        self._reconnect_tasks: set[asyncio.Task[None]] = set()
        self._reconnect_waiting = False
        self._logger = logger.bind(component="lifecycle_manager")

        self._register_listeners()

    def _register_listeners(self) -> None:
        self._client.on(QR_EVENT, self._on_qr)
        self._client.on(READY_EVENT, self._on_ready)
        self._client.on(AUTHENTICATED_EVENT, self._on_authenticated)
        self._client.on(AUTH_FAILURE_EVENT, self._on_auth_failure)
        self._client.on(DISCONNECTED_EVENT, self._on_disconnected)
        self._client.on(CHANGE_STATE_EVENT, self._on_change_state)
        self._client.on(LOADING_SCREEN_EVENT, self._on_loading_screen)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def client(self) -> MessagingClient:
        return self._client

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def phase(self) -> ConnectionPhase:
        return self._state.phase

    @property
    def current_qr(self) -> str | None:
        return self._state.current_qr

    @property
    def is_busy(self) -> bool:
        """Whether an initialize() call is waiting for the client."""
        return self._busy

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def reconnect_scheduled(self) -> bool:
        """Whether a reconnect is waiting out its delay."""
        return self._reconnect_waiting

    def status(self) -> dict[str, Any]:
        """Connection flags as returned by the status endpoints."""
        return self._state.to_dict()

    async def client_state(self) -> str:
        """Ask the client for its own connection state.

        Returns:
            The client's state string, or DISCONNECTED before initialization
            or when the client cannot report it.
        """
        if not self._state.initialized:
            return DISCONNECTED_STATE
        try:
            state = await self._client.get_state()
        except Exception as e:
            self._logger.warning("client_state_unavailable", error=str(e))
            return DISCONNECTED_STATE
        return state or DISCONNECTED_STATE

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self) -> str | None:
        """Start (or restart) the messaging session.

        Returns:
            The QR payload to scan, or None if the session is authenticated
            without pairing.

        Raises:
            InitializationInProgressError: If another call is already waiting.
            RetriesExhaustedError: If the retry budget is spent.
            AuthenticationFailedError: If the client reports an auth failure.
            InitializationFailedError: If the client fails to start.
            InitializationTimeoutError: If nothing arrives within the timeout.
        """
        if self._state.authenticated:
            self._logger.debug("initialize_skipped_already_authenticated")
            return None

        if self._busy:
            raise InitializationInProgressError(
                "Initialization already in progress",
                detail="Wait for the pending attempt to finish",
            )

        if self._state.retry_count >= self._max_retries:
            self._logger.error(
                "max_initialization_retries_reached",
                max_retries=self._max_retries,
            )
            raise RetriesExhaustedError(self._max_retries)

        self._busy = True
        try:
            await self._teardown()

            attempt = self._state.begin_attempt()
            self._logger.info(
                "initialization_attempt",
                attempt=attempt,
                max_retries=self._max_retries,
            )

            loop = asyncio.get_running_loop()
            self._pending = loop.create_future()
            self._start_task = loop.create_task(self._start_client())

            try:
                return await asyncio.wait_for(self._pending, timeout=self._init_timeout)
            except TimeoutError:
                self._logger.warning(
                    "initialization_timeout",
                    attempt=attempt,
                    timeout_seconds=self._init_timeout,
                )
                raise InitializationTimeoutError(self._init_timeout) from None
        finally:
            self._pending = None
            self._busy = False

    async def _start_client(self) -> None:
        self._logger.info("client_initialization_started")
        try:
            await self._client.initialize()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.error("client_initialization_failed", error=str(e))
            self._reject(
                InitializationFailedError(
                    "Failed to initialize WhatsApp client", detail=str(e)
                )
            )

    async def _teardown(self) -> None:
        """Destroy a live client instance; errors are logged and suppressed."""
        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()
        self._start_task = None

        if not self._client.is_running:
            return

        self._logger.info("destroying_existing_client")
        try:
            await self._client.destroy()
        except Exception as e:
            self._logger.error("client_destroy_failed", error=str(e))

    def _resolve(self, result: str | None) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(result)

    def _reject(self, error: Exception) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(error)

    # ------------------------------------------------------------------
    # Client event handlers
    # ------------------------------------------------------------------

    def _on_qr(self, qr: str) -> None:
        if not self._state.qr_received(qr):
            self._logger.debug("qr_ignored_already_authenticated")
            return
        self._logger.info("qr_received")
        self._resolve(qr)

    def _on_authenticated(self, *args: Any) -> None:  # noqa: ARG002
        self._logger.info("client_authenticated")
        self._state.mark_authenticated()
        self._resolve(None)

    def _on_ready(self, *args: Any) -> None:  # noqa: ARG002
        self._logger.info("client_ready")
        self._state.mark_ready()
        self._resolve(None)

    def _on_auth_failure(self, message: Any = None) -> None:
        self._logger.error("authentication_failed", reason=str(message))
        self._reject(
            AuthenticationFailedError(
                "Authentication failed",
                detail=str(message) if message is not None else None,
            )
        )

    def _on_change_state(self, state: Any) -> None:
        self._logger.info("client_state_changed", state=str(state))
        if state == CONNECTED_STATE:
            self._state.mark_ready()
            self._resolve(None)

    def _on_loading_screen(self, percent: Any = None, message: Any = None) -> None:
        self._logger.info("client_loading", percent=percent, message=message)

    def _on_disconnected(self, reason: Any = None) -> None:
        self._logger.warning("client_disconnected", reason=str(reason))
        self._state.mark_disconnected()
        self._reject(
            InitializationFailedError(
                "Client disconnected during initialization",
                detail=str(reason) if reason is not None else None,
            )
        )

        if self._state.retry_count >= self._max_retries:
            self._logger.error(
                "reconnect_abandoned",
                retry_count=self._state.retry_count,
                max_retries=self._max_retries,
            )
            return

        self._schedule_reconnect()

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self.reconnect_scheduled:
            self._logger.debug("reconnect_already_scheduled")
            return

        self._logger.info(
            "reconnect_scheduled",
            delay_seconds=self._retry_delay,
            retry_count=self._state.retry_count,
        )
        self._reconnect_waiting = True
        task = asyncio.get_running_loop().create_task(self._reconnect())
        self._reconnect_tasks.add(task)
        task.add_done_callback(self._reconnect_tasks.discard)

    async def _reconnect(self) -> None:
        try:
            await asyncio.sleep(self._retry_delay)
        finally:
            # A disconnect during the attempt below schedules its own reconnect
            self._reconnect_waiting = False

        try:
            qr = await self.initialize()
        except GatewayError as e:
            self._logger.error("reconnect_failed", error=e.message, detail=e.detail)
            return
        except Exception as e:
            self._logger.error("reconnect_failed", error=str(e))
            return

        if qr is not None:
            self._logger.warning("reconnect_requires_pairing")
        else:
            self._logger.info("reconnected")

    # ------------------------------------------------------------------
    # Startup and shutdown
    # ------------------------------------------------------------------

    async def auto_initialize(self, pairing_url: str | None = None) -> bool:
        """Try to restore a saved session at startup.

        If the client asks for a QR code, the attempt is torn down and the
        gateway waits for manual pairing.

        Args:
            pairing_url: Where an operator can pair the account; logged.

        Returns:
            True if a saved session was restored.
        """
        self._logger.info("auto_initialization_started")
        try:
            qr = await self.initialize()
        except GatewayError as e:
            self._logger.warning(
                "auto_initialization_failed",
                error=e.message,
                detail=e.detail,
                pairing_url=pairing_url,
            )
            return False

        if qr is None:
            self._logger.info("session_restored")
            return True

        await self._teardown()
        self._state.abandon_attempt()
        self._logger.info("manual_pairing_required", pairing_url=pairing_url)
        return False

    async def shutdown(self) -> None:
        """Cancel pending work and destroy the client."""
        pending_reconnects = list(self._reconnect_tasks)
        for task in pending_reconnects:
            task.cancel()
        if pending_reconnects:
            await asyncio.gather(*pending_reconnects, return_exceptions=True)
        self._reconnect_tasks.clear()
        self._reconnect_waiting = False

        self._reject(InitializationFailedError("Gateway shutting down"))
        await self._teardown()
        self._logger.info("lifecycle_manager_shutdown")


def get_lifecycle_manager() -> ConnectionLifecycleManager | None:
    """Get the global lifecycle manager instance.

    Returns:
        Lifecycle manager or None if no client has been set up.
    """
    return _lifecycle_manager


def set_lifecycle_manager(manager: ConnectionLifecycleManager | None) -> None:
    """Set the global lifecycle manager instance.

    Useful for testing.

    Args:
        manager: Lifecycle manager, or None to clear it.
    """
    global _lifecycle_manager
    _lifecycle_manager = manager
