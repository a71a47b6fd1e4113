"""Webhook subscription API endpoints.

Provides REST API for registering, listing and removing webhook
subscriptions.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.errors import InvalidInputError
from src.webhooks.registry import get_subscription_registry

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


# ============================================================================
# Request Models
# ============================================================================


class SubscriptionCreateRequest(BaseModel):
    """Request to register a webhook.

    Fields are validated by the registry so that every malformed request
    gets the same 400 response shape.
    """

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://example.com/webhook",
                    "events": ["message", "message_ack"],
                    "secret": "s3cr3t",
                }
            ]
        }
    }

    url: Any = Field(default=None, description="Absolute callback URL")
    events: Any = Field(default=None, description="Non-empty list of event kinds")
    secret: Any = Field(default=None, description="Bearer token sent with deliveries")


class SubscriptionDeleteRequest(BaseModel):
    """Request to remove a webhook."""

    url: Any = Field(default=None, description="Callback URL of the subscription")


# ============================================================================
# Response Models
# ============================================================================


class SubscriptionResponse(BaseModel):
    """Public view of a subscription; the secret is never returned."""

    url: str
    events: list[str]


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=MessageResponse,
    responses={
        201: {"description": "Subscription created"},
        400: {"description": "Invalid request"},
    },
    status_code=201,
)
async def create_subscription(request: SubscriptionCreateRequest) -> MessageResponse:
    """Register a webhook, replacing any subscription with the same URL."""
    registry = get_subscription_registry()
    registry.register(request.url, request.events, request.secret)
    return MessageResponse(message="Subscription created successfully")


@router.get(
    "",
    response_model=list[SubscriptionResponse],
)
async def list_subscriptions() -> list[SubscriptionResponse]:
    """List registered webhooks without their secrets."""
    registry = get_subscription_registry()
    return [SubscriptionResponse(**s.to_public_dict()) for s in registry.list_all()]


@router.delete(
    "",
    response_model=MessageResponse,
    responses={
        400: {"description": "URL is required"},
        404: {"description": "Subscription not found"},
    },
)
async def delete_subscription(request: SubscriptionDeleteRequest) -> MessageResponse:
    """Remove the subscription registered for a URL."""
    if not request.url or not isinstance(request.url, str):
        raise InvalidInputError("URL is required")

    registry = get_subscription_registry()
    registry.remove(request.url)
    return MessageResponse(message="Subscription removed successfully")
