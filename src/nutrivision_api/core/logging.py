"""Logging setup for the API process."""

import logging

from nutrivision_api.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure the root logger once for the process.

    Uses DEBUG when the app runs in debug mode, otherwise the configured level.
    """
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    # Motor/pymongo heartbeat chatter drowns out request logs at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
