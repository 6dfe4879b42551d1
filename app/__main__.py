from __future__ import annotations

import logging
import sys

import uvicorn

from app.core.config import settings
from app.core.logging import setup_logging

logger = logging.getLogger("client-api")


def main() -> int:
    setup_logging(settings)
    if not settings.DATABASE_URL:
        logger.critical("DATABASE_URL environment variable is not set")
        return 1

    logger.info("server is running on http://%s:%d", settings.HOST, settings.PORT)
    # lifespan="on": un échec de connexion au démarrage arrête uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        lifespan="on",
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
