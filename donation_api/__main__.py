"""Process entry point: ``python -m donation_api``."""

import logging

import uvicorn

# Exits with a diagnostic if required configuration is missing
from donation_api.config import settings

logger = logging.getLogger("donation_api")


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Server running on %s", settings.PORT)
    uvicorn.run(
        "donation_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
