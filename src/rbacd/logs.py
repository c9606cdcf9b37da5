"""
Logging setup.

Console output in dev mode, otherwise daily rotated files under ``log_dir``.
"""

import sys

from loguru import logger

from .config import Settings


LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{extra[request_id]} | {name}:{function}:{line} - {message}"
)


def setup_logging(settings: Settings) -> None:
    """
    Replace loguru's default sink with the service sinks.

    Args:
        settings: Service settings (dev_mode, log_level, log_dir)
    """
    logger.remove()
    logger.configure(extra={"request_id": "-"})

    if settings.dev_mode:
        logger.add(sys.stderr, level=settings.log_level, format=LOG_FORMAT, colorize=True)
    else:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(settings.log_dir / "{time:YYYY-MM-DD}.log"),
            level=settings.log_level,
            format=LOG_FORMAT,
            rotation="00:00",
            retention="30 days",
            enqueue=True,
        )

    logger.debug(f"Logging configured (dev_mode={settings.dev_mode}, level={settings.log_level})")
