import logging
import os
import sys

from loguru import logger

NOISY_LIBRARIES = ["uvicorn.access", "httpx", "httpcore"]


def setup_logging(level: str | None = None, serialize: bool | None = None) -> None:
    if level is None:
        level = os.getenv("CA_LOG_LEVEL", "INFO")
    if serialize is None:
        serialize = os.getenv("CA_LOG_SERIALIZE", "false").lower() in ["true", "1", "yes"]

    logger.remove()

    if serialize:
        logger.add(sys.stderr, level=level.upper(), format="{message}", serialize=True)
    else:
        logger.add(
            sys.stderr,
            level=level.upper(),
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        )

    for lib in NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)
