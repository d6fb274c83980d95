"""
Loguru sink setup.

The rotating file sink is the persisted debug log: background runs have no
console, so this is where their history ends up.
"""

import sys

from loguru import logger

from .settings import Settings


def configure_logging(settings: Settings, *, console: bool = True) -> None:
    logger.remove()
    if console:
        logger.add(sys.stderr, level=settings.LOG_LEVEL)

    log_file = settings.log_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level="DEBUG",
        rotation=settings.LOG_ROTATION,
        retention=settings.LOG_RETENTION,
        enqueue=False,
    )
    logger.debug(f"[Logging] File sink at {log_file}")
