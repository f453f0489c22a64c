"""Logging configuration shared by the API and the command line."""

import logging

from academy_admin.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int | str | None = None) -> int:
    """Configure root logging once for the process.

    Development runs log at DEBUG; otherwise ``APP_LOG_LEVEL`` applies unless
    an explicit level is passed.
    """
    if level is None:
        level = logging.DEBUG if settings.is_development else settings.app_log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # The Firestore client is very chatty at DEBUG
    logging.getLogger("google").setLevel(max(level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
    return level
