"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_list_env(name: str, default: list[str]) -> list[str]:
    """Get a comma-separated list from an environment variable."""
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        HOST: Interface the HTTP server binds to.
        PORT: HTTP server port.
        LOG_LEVEL: Logging level.
        LOG_JSON: Render logs as JSON instead of console key-values.
        AUTH_KEY_FILE: Where the API bearer key is persisted.
        MESSAGING_CLIENT: Import path ``module:factory`` of the messaging client.
        SESSION_DATA_PATH: Directory the messaging client keeps its session in.
        CLIENT_ID: Session identifier passed to the messaging client.
        CHROME_PATH: Optional browser executable for the messaging client.
        AUTO_INITIALIZE: Try to restore a saved session at startup.
        MAX_INIT_RETRIES: Initialization attempts before manual intervention.
        RETRY_DELAY_SECONDS: Delay before reconnecting after a disconnect.
        INIT_TIMEOUT_SECONDS: Bound on a single initialization attempt.
        WEBHOOK_TIMEOUT_SECONDS: HTTP timeout for one webhook delivery.
        MAX_CONCURRENT_DELIVERIES: Concurrent webhook POSTs.
        ALLOWED_ORIGINS: CORS origins.
    """

    # Server
    HOST: str = "localhost"
    PORT: int = 3000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # API key
    AUTH_KEY_FILE: str = ".auth_key"

    # Messaging client
    MESSAGING_CLIENT: str | None = None
    SESSION_DATA_PATH: str = "./whatsapp-sessions"
    CLIENT_ID: str = "whatsapp-bridge"
    CHROME_PATH: str | None = None

    # Connection lifecycle
    AUTO_INITIALIZE: bool = True
    MAX_INIT_RETRIES: int = 5
    RETRY_DELAY_SECONDS: float = 10.0
    INIT_TIMEOUT_SECONDS: float = 120.0

    # Webhook delivery
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0
    MAX_CONCURRENT_DELIVERIES: int = 10

    # CORS
    ALLOWED_ORIGINS: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            HOST=os.getenv("HOST", "localhost"),
            PORT=int(os.getenv("PORT", "3000")),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            LOG_JSON=_get_bool_env("LOG_JSON", default=False),
            AUTH_KEY_FILE=os.getenv("AUTH_KEY_FILE", ".auth_key"),
            MESSAGING_CLIENT=os.getenv("MESSAGING_CLIENT"),
            SESSION_DATA_PATH=os.getenv("SESSION_DATA_PATH", "./whatsapp-sessions"),
            CLIENT_ID=os.getenv("CLIENT_ID", "whatsapp-bridge"),
            CHROME_PATH=os.getenv("CHROME_PATH"),
            AUTO_INITIALIZE=_get_bool_env("AUTO_INITIALIZE", default=True),
            MAX_INIT_RETRIES=int(os.getenv("MAX_INIT_RETRIES", "5")),
            RETRY_DELAY_SECONDS=float(os.getenv("RETRY_DELAY_SECONDS", "10")),
            INIT_TIMEOUT_SECONDS=float(os.getenv("INIT_TIMEOUT_SECONDS", "120")),
            WEBHOOK_TIMEOUT_SECONDS=float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10")),
            MAX_CONCURRENT_DELIVERIES=int(os.getenv("MAX_CONCURRENT_DELIVERIES", "10")),
            ALLOWED_ORIGINS=_get_list_env("ALLOWED_ORIGINS", ["http://localhost:3000"]),
        )


# Global settings instance
settings = Settings.from_env()
