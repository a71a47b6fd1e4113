"""Session authentication API endpoints.

Provides REST API for starting the messaging session, fetching the
pairing QR code and inspecting the connection.
"""

import time
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import require_lifecycle_manager
from src.api.security import get_api_key
from src.connection.lifecycle import ConnectionLifecycleManager
from src.connection.qr import qr_to_data_url
from src.errors import (
    GatewayError,
    InitializationInProgressError,
    InvalidInputError,
    NotFoundError,
    UpstreamFailureError,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

QR_READY = "QR_READY"
AUTHENTICATED = "AUTHENTICATED"


# ============================================================================
# Response Models
# ============================================================================


class InitializeResponse(BaseModel):
    """Result of an initialization request."""

    status: str = Field(..., description="QR_READY or AUTHENTICATED")
    qr: str | None = Field(default=None, description="QR code as a PNG data URL")


class StatusResponse(BaseModel):
    """Connection flags plus the client's own state."""

    authenticated: bool
    initialized: bool
    qrDisplayed: bool  # noqa: N815
    state: str
    timestamp: int = Field(..., description="Server time in epoch milliseconds")


class KeyResponse(BaseModel):
    """The gateway API key."""

    key: str | None


def _now_ms() -> int:
    return int(time.time() * 1000)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/initialize",
    response_model=InitializeResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Already authenticated"},
        409: {"description": "Initialization already in progress"},
        500: {"description": "Initialization failed"},
    },
)
async def initialize_session(
    manager: ConnectionLifecycleManager = Depends(require_lifecycle_manager),
) -> InitializeResponse:
    """Start the messaging client and return a QR code to scan.

    Returns AUTHENTICATED instead when a saved session is restored.
    """
    logger.info("initialization_requested")

    if manager.state.authenticated:
        raise InvalidInputError("WhatsApp client is already authenticated")

    try:
        qr = await manager.initialize()
    except InitializationInProgressError:
        raise
    except GatewayError as e:
        logger.error("initialization_request_failed", error=e.message, detail=e.detail)
        raise UpstreamFailureError(
            "Failed to initialize WhatsApp client",
            detail=f"{e.message}: {e.detail}" if e.detail else e.message,
        ) from e

    if qr is None:
        if manager.state.authenticated:
            return InitializeResponse(status=AUTHENTICATED)
        raise UpstreamFailureError("Failed to get QR code or authenticate")

    return InitializeResponse(status=QR_READY, qr=qr_to_data_url(qr))


@router.get("/status", response_model=StatusResponse)
async def get_status(
    manager: ConnectionLifecycleManager = Depends(require_lifecycle_manager),
) -> StatusResponse:
    """Current connection status."""
    return StatusResponse(
        **manager.status(),
        state=await manager.client_state(),
        timestamp=_now_ms(),
    )


@router.get(
    "/qrcode",
    response_model=InitializeResponse,
    responses={
        400: {"description": "Already authenticated"},
        404: {"description": "No QR code available"},
    },
)
async def get_qrcode(
    manager: ConnectionLifecycleManager = Depends(require_lifecycle_manager),
) -> InitializeResponse:
    """The QR code currently waiting to be scanned."""
    if manager.state.authenticated:
        raise InvalidInputError("WhatsApp client is already authenticated")

    qr = manager.current_qr
    if not qr:
        raise NotFoundError("No QR code available")

    return InitializeResponse(status=QR_READY, qr=qr_to_data_url(qr))


@router.get("/key", response_model=KeyResponse)
async def get_key() -> KeyResponse:
    """The gateway API key."""
    return KeyResponse(key=get_api_key())


@router.get(
    "/account",
    responses={
        400: {"description": "Client not fully initialized"},
    },
)
async def get_account(
    manager: ConnectionLifecycleManager = Depends(require_lifecycle_manager),
) -> dict[str, Any]:
    """Information about the connected account."""
    info = manager.client.info
    if info is None:
        raise InvalidInputError("Client not fully initialized")
    return info.to_wire()
