"""Browser pairing page.

``GET /init/{key}`` starts the messaging session and serves a page with the
QR code to scan. The page polls ``/auth/status`` until the account is
paired. The API key in the path stands in for the bearer header.
"""

from pathlib import Path
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse
from jinja2 import Environment, FileSystemLoader

from src.api.dependencies import require_lifecycle_manager
from src.api.security import get_api_key, keys_match
from src.connection.lifecycle import ConnectionLifecycleManager
from src.connection.qr import qr_to_data_url
from src.errors import GatewayError, UnauthorizedError, UpstreamFailureError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Pairing"])

TEMPLATES_DIR = Path(__file__).parent / "templates"
STATUS_POLL_INTERVAL_MS = 1000
STATUS_MAX_POLLS = 30


def _get_jinja_env() -> Environment:
    """Get Jinja2 environment for page templates."""
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
    )


def render_pairing_page(qr_data_url: str, api_key: str) -> str:
    """Render the QR pairing page.

    Args:
        qr_data_url: QR code image as a data URL.
        api_key: Key the page uses to poll the status endpoint.

    Returns:
        HTML document.
    """
    template = _get_jinja_env().get_template("pairing.html")
    return template.render(
        qr_data_url=qr_data_url,
        api_key=api_key,
        poll_interval_ms=STATUS_POLL_INTERVAL_MS,
        max_polls=STATUS_MAX_POLLS,
    )


@router.get(
    "/init/{key}",
    response_class=HTMLResponse,
    responses={
        200: {"description": "Pairing page, or authenticated status as JSON"},
        401: {"description": "Invalid authentication key"},
        500: {"description": "Initialization failed"},
    },
)
async def pairing_page(
    key: str,
    manager: ConnectionLifecycleManager = Depends(require_lifecycle_manager),
) -> Any:
    """Start a fresh session and show its QR code."""
    api_key = get_api_key()
    if not keys_match(key, api_key):
        raise UnauthorizedError("Invalid authentication key")

    if manager.state.authenticated and manager.client.is_running:
        logger.info("pairing_skipped_already_authenticated")
        return JSONResponse({"status": "authenticated"})

    try:
        qr = await manager.initialize()
    except GatewayError as e:
        logger.error("pairing_initialization_failed", error=e.message, detail=e.detail)
        raise UpstreamFailureError(
            "Failed to initialize WhatsApp client",
            detail=f"{e.message}: {e.detail}" if e.detail else e.message,
        ) from e

    if qr is None:
        if manager.state.authenticated:
            logger.info("pairing_authenticated_without_qr")
            return JSONResponse({"status": "authenticated"})
        raise UpstreamFailureError("Failed to generate QR code")

    logger.info("pairing_page_served")
    return HTMLResponse(render_pairing_page(qr_to_data_url(qr), api_key or ""))
