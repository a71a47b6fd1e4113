"""FastAPI application for the WhatsApp REST gateway.

This module provides:
- create_app factory wiring the messaging client, lifecycle and webhooks
- Application lifespan (API key bootstrap, auto-initialization, shutdown)
- /health and /status endpoints
- CORS configuration
- Error handling
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.security import (
    get_api_key,
    get_or_create_auth_key,
    require_bearer_token,
    set_api_key,
)
from src.client.loader import create_client
from src.client.protocol import MessagingClient
from src.config import Settings
from src.config import settings as default_settings
from src.connection.lifecycle import (
    ConnectionLifecycleManager,
    get_lifecycle_manager,
    set_lifecycle_manager,
)
from src.connection.state import ConnectionState
from src.errors import GatewayError
from src.webhooks.dispatcher import (
    EventDispatcher,
    get_event_dispatcher,
    set_event_dispatcher,
)
from src.webhooks.registry import get_subscription_registry

logger = structlog.get_logger(__name__)


# ============================================================================
# Response Models
# ============================================================================


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    detail: str | None = Field(default=None, description="Detailed error information")


# ============================================================================
# Wiring
# ============================================================================


def setup_gateway(client: MessagingClient, settings: Settings) -> ConnectionLifecycleManager:
    """Wire a messaging client into the webhook dispatcher and lifecycle manager.

    Sets the global dispatcher and lifecycle manager.

    Args:
        client: Messaging client to serve.
        settings: Application settings.

    Returns:
        The lifecycle manager owning the client.
    """
    dispatcher = EventDispatcher(
        get_subscription_registry(),
        delivery_timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
        max_concurrent_deliveries=settings.MAX_CONCURRENT_DELIVERIES,
    )
    dispatcher.attach(client)
    set_event_dispatcher(dispatcher)

    manager = ConnectionLifecycleManager(
        client,
        state=ConnectionState(),
        max_retries=settings.MAX_INIT_RETRIES,
        retry_delay=settings.RETRY_DELAY_SECONDS,
        init_timeout=settings.INIT_TIMEOUT_SECONDS,
    )
    set_lifecycle_manager(manager)

    logger.info("gateway_wired", client_type=type(client).__name__)
    return manager


def pairing_url(settings: Settings, api_key: str) -> str:
    """URL an operator opens to pair the account."""
    return f"http://{settings.HOST}:{settings.PORT}/init/{api_key}"


def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:  # noqa: ARG001
    """Log exceptions no task awaited instead of letting them vanish."""
    exc = context.get("exception")
    logger.error(
        "unhandled_async_exception",
        message=context.get("message"),
        error=str(exc) if exc else None,
        exc_info=exc,
    )


# ============================================================================
# Application Setup
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("application_starting")
    settings: Settings = app.state.settings

    asyncio.get_running_loop().set_exception_handler(_handle_loop_exception)

    if get_api_key() is None:
        set_api_key(get_or_create_auth_key(settings.AUTH_KEY_FILE))

    manager = get_lifecycle_manager()
    if manager is None and settings.MESSAGING_CLIENT:
        manager = setup_gateway(create_client(settings), settings)

    auto_init_task: asyncio.Task[bool] | None = None
    url = pairing_url(settings, get_api_key() or "")
    if manager is None:
        logger.warning("messaging_client_not_configured")
    elif settings.AUTO_INITIALIZE:
        auto_init_task = asyncio.create_task(manager.auto_initialize(url))
    else:
        logger.info("manual_pairing_required", pairing_url=url)

    yield

    # Shutdown
    logger.info("application_shutting_down")

    if auto_init_task is not None and not auto_init_task.done():
        auto_init_task.cancel()
        with suppress(asyncio.CancelledError):
            await auto_init_task

    await get_event_dispatcher().shutdown()

    if manager is not None:
        await manager.shutdown()


OPENAPI_TAGS = [
    {"name": "Subscriptions", "description": "Webhook subscriptions for client events."},
    {"name": "Auth", "description": "Session initialization, QR pairing and status."},
    {"name": "Pairing", "description": "Browser page for scanning the pairing QR code."},
    {"name": "Chats", "description": "Chat listing and management."},
    {"name": "Messages", "description": "Sending and managing messages."},
    {"name": "Health", "description": "Liveness and connection status."},
]

API_DESCRIPTION = """
## Overview

REST gateway over a WhatsApp Web automation client. Pair an account by
scanning a QR code, then send messages, manage chats and receive client
events through webhooks.

## Authentication

Every endpoint except `/init/{key}`, `/status` and `/health` requires
`Authorization: Bearer <api key>`. The key is generated on first start and
stored in the configured key file.

## Webhooks

```bash
curl -X POST http://localhost:3000/subscriptions \\
  -H "Authorization: Bearer $API_KEY" \\
  -H "Content-Type: application/json" \\
  -d '{"url": "https://example.com/webhook", "events": ["message"], "secret": "s1"}'
```

Each matching event is POSTed once to the URL with
`Authorization: Bearer <secret>` and a `{"event", "data"}` body.
"""


def create_app(
    title: str = "WhatsApp REST Gateway",
    version: str = "1.0.0",
    description: str | None = None,
    cors_origins: list[str] | None = None,
    *,
    settings: Settings | None = None,
    client: MessagingClient | None = None,
    api_key: str | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        title: API title.
        version: API version.
        description: API description (uses default if not provided).
        cors_origins: Allowed CORS origins (uses settings if not provided).
        settings: Application settings (uses environment if not provided).
        client: Messaging client; loaded from settings at startup if not provided.
        api_key: API key; loaded from the key file at startup if not provided.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or default_settings

    if api_key is not None:
        set_api_key(api_key)
    if client is not None:
        setup_gateway(client, settings)

    app = FastAPI(
        title=title,
        version=version,
        description=description or API_DESCRIPTION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=OPENAPI_TAGS,
    )
    app.state.settings = settings

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Add exception handlers
    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(
        request: Request, exc: GatewayError
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "request_failed",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
            detail=exc.detail,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message, detail=exc.detail).model_dump(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException  # noqa: ARG001
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
                detail=None,
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError  # noqa: ARG001
    ) -> JSONResponse:
        messages = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="Invalid request",
                detail="; ".join(messages) or None,
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception  # noqa: ARG001
    ) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                detail=str(exc),
            ).model_dump(),
        )

    # Register routes
    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all routes on the application.

    Args:
        app: FastAPI application.
    """
    from src.api.auth import router as auth_router
    from src.api.chats import router as chats_router
    from src.api.messages import router as messages_router
    from src.api.pairing import router as pairing_router
    from src.api.subscriptions import router as subscriptions_router

    protected = [Depends(require_bearer_token)]
    app.include_router(subscriptions_router, dependencies=protected)
    app.include_router(auth_router, dependencies=protected)
    app.include_router(chats_router, dependencies=protected)
    app.include_router(messages_router, dependencies=protected)

    # Authenticated by the key in the path
    app.include_router(pairing_router)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        """Basic liveness check."""
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    @app.get("/status", tags=["Health"])
    async def status() -> dict[str, Any]:
        """Connection flags, without authentication."""
        manager = get_lifecycle_manager()
        if manager is None:
            return ConnectionState().to_dict()
        return manager.status()


# Default app instance
app = create_app()
