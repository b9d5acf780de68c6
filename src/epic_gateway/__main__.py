"""Run the gateway: ``python -m epic_gateway`` or ``epic-gateway``."""

from __future__ import annotations

import logging
import sys

import uvicorn

from .api.app import create_app
from .config import load_settings, setup_logging
from .errors import ConfigurationError


logger = logging.getLogger("epic_gateway")


def main() -> None:
    try:
        settings = load_settings()
        setup_logging(settings.log_level)
        app = create_app(settings)
    except ConfigurationError as exc:
        setup_logging()
        logger.error("Configuration error: %s", exc.message)
        sys.exit(1)

    logger.info("Server running on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
