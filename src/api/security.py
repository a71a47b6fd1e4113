"""API key bootstrap and bearer-token authentication.

The gateway uses one shared API key. It is generated on first start
(32 random bytes, hex-encoded), written to a file and reused afterwards.
"""

import hmac
import secrets
from pathlib import Path

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.errors import ConfigurationError, UnauthorizedError

logger = structlog.get_logger(__name__)

AUTH_KEY_BYTES = 32
UNAUTHORIZED_MESSAGE = "Unauthorized - Bearer token required"

_bearer_scheme = HTTPBearer(auto_error=False, description="Gateway API key")

# Global API key
_api_key: str | None = None


def generate_auth_key() -> str:
    """Generate a new random API key."""
    return secrets.token_hex(AUTH_KEY_BYTES)


def get_or_create_auth_key(path: str | Path) -> str:
    """Load the API key from ``path``, creating it on first use.

    Args:
        path: Key file location.

    Returns:
        The API key.

    Raises:
        ConfigurationError: If the key file cannot be read or written.
    """
    key_file = Path(path)
    try:
        if key_file.exists():
            key = key_file.read_text(encoding="utf-8").strip()
            if key:
                logger.info("auth_key_loaded", path=str(key_file))
                return key

        key = generate_auth_key()
        key_file.write_text(key, encoding="utf-8")
        logger.info("auth_key_generated", path=str(key_file))
        return key
    except OSError as e:
        logger.error("auth_key_unavailable", path=str(key_file), error=str(e))
        raise ConfigurationError("Cannot load API key", detail=str(e)) from e


def keys_match(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison of two API keys."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def get_api_key() -> str | None:
    """Get the API key the gateway accepts.

    Returns:
        API key or None if not set up yet.
    """
    return _api_key


def set_api_key(key: str | None) -> None:
    """Set the API key the gateway accepts.

    Useful for testing.

    Args:
        key: API key, or None to reject every request.
    """
    global _api_key
    _api_key = key


async def require_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> None:
    """FastAPI dependency rejecting requests without the API key.

    Raises:
        UnauthorizedError: If the Authorization header is missing or wrong.
    """
    provided = credentials.credentials if credentials else None
    if not keys_match(provided, get_api_key()):
        raise UnauthorizedError(UNAUTHORIZED_MESSAGE)
