"""FastAPI application for the WhatsApp REST gateway.

This module contains:
- Subscription, auth, pairing, chat and message endpoints
- Bearer-token authentication
- Application factory and default instance
"""

from src.api.routes import ErrorResponse, app, create_app, setup_gateway
from src.api.security import (
    generate_auth_key,
    get_api_key,
    get_or_create_auth_key,
    require_bearer_token,
    set_api_key,
)

__all__ = [
    # Security
    "generate_auth_key",
    "get_api_key",
    "get_or_create_auth_key",
    "require_bearer_token",
    "set_api_key",
    # Response models
    "ErrorResponse",
    # App factory and instance
    "app",
    "create_app",
    "setup_gateway",
]
