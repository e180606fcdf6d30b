# app/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from app.config.settings import get_settings

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "httpx",
    "celery",
    "uvicorn.access",
]


def setup_logging(verbose=True):
    """Configure application logging for the API and the worker"""
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if not verbose or not settings.DEBUG:
        # Keep library chatter out of booking logs
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
