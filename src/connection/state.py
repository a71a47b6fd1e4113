"""Connection state holder.

A single ConnectionState is owned by the lifecycle manager. Fields are only
changed through the transition methods below, which keep the invariant
that an authenticated session never carries a QR code.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ConnectionPhase(str, Enum):
    """Phase of the messaging session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    QR_PENDING = "qr_pending"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


@dataclass
class ConnectionState:
    """Authentication and connection flags of the messaging session.

    Attributes:
        phase: Current lifecycle phase.
        authenticated: The account is paired.
        initialized: The client finished loading and can serve calls.
        qr_displayed: A QR code is waiting to be scanned.
        current_qr: Raw payload of the pending QR code.
        retry_count: Initialization attempts since the last successful login.
    """

    phase: ConnectionPhase = ConnectionPhase.UNINITIALIZED
    authenticated: bool = False
    initialized: bool = False
    qr_displayed: bool = False
    current_qr: str | None = None
    retry_count: int = 0

    def _clear_session(self) -> None:
        self.authenticated = False
        self.initialized = False
        self.qr_displayed = False
        self.current_qr = None

    def begin_attempt(self) -> int:
        """Reset session flags and count a new initialization attempt.

        Returns:
            The attempt number.
        """
        self._clear_session()
        self.retry_count += 1
        self.phase = ConnectionPhase.INITIALIZING
        return self.retry_count

    def qr_received(self, qr: str) -> bool:
        """Store a freshly issued QR code.

        Returns:
            False if the session is already authenticated and the QR was ignored.
        """
        if self.authenticated:
            return False
        self.current_qr = qr
        self.qr_displayed = True
        self.phase = ConnectionPhase.QR_PENDING
        return True

    def mark_authenticated(self) -> None:
        """Pairing succeeded; the client may still be loading."""
        self.authenticated = True
        self.qr_displayed = False
        self.current_qr = None
        self.phase = ConnectionPhase.AUTHENTICATED

    def mark_ready(self) -> None:
        """The client is authenticated and fully loaded."""
        self.mark_authenticated()
        self.initialized = True
        self.retry_count = 0

    def mark_disconnected(self) -> None:
        """The session dropped; the retry counter is kept."""
        self._clear_session()
        self.phase = ConnectionPhase.DISCONNECTED

    def abandon_attempt(self) -> None:
        """Drop an unfinished attempt and wait for a manual initialize."""
        self._clear_session()
        self.phase = ConnectionPhase.UNINITIALIZED

    def reset(self) -> None:
        """Return to the initial state, including the retry counter."""
        self._clear_session()
        self.retry_count = 0
        self.phase = ConnectionPhase.UNINITIALIZED

    def to_dict(self) -> dict[str, Any]:
        """Status shape returned by the HTTP API."""
        return {
            "authenticated": self.authenticated,
            "initialized": self.initialized,
            "qrDisplayed": self.qr_displayed,
        }
