"""Process entry point: configure logging and serve the API with uvicorn."""

import uvicorn

from src.config import Settings
from src.config import settings as default_settings
from src.logging_config import configure_logging


def main(settings: Settings | None = None) -> None:
    """Run the gateway until SIGINT/SIGTERM.

    Args:
        settings: Application settings (uses environment if not provided).
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    from src.api.routes import create_app

    app = create_app(settings=settings)

    # log_config=None keeps the structlog handlers installed above
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        access_log=False,
    )


if __name__ == "__main__":
    main()
