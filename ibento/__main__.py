"""Process entry point: ``python -m ibento`` or the ``ibento-api`` script.

Loads settings first so a missing MONGODB_URI exits with status 1 before
anything is served, then hands the app factory to uvicorn.
"""

import logging
import sys

import uvicorn

from ibento.config import get_settings
from ibento.core.errors import ConfigurationError
from ibento.infrastructure.observability import setup_logging

logger = logging.getLogger("ibento")


def main() -> None:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.critical(
            f"{e.message}. MONGODB_URI must be set in the environment.",
            extra={"error_code": e.code},
        )
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_format)
    logger.info(f"Starting server on port {settings.port}")
    uvicorn.run(
        "ibento.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
