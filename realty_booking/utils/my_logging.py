"""Logging configuration shared by the API process and the Celery worker"""
import logging
import sys
from realty_booking.config.settings import get_settings

# Capped at WARNING regardless of verbosity
THIRD_PARTY_LOGGERS = [
    "googleapiclient.discovery",
    "googleapiclient.discovery_cache",
    "google_auth_httplib2",
    "urllib3",
]

# Only capped when verbose=False
CHATTY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "celery",
    "uvicorn.access",
]


def setup_logging(verbose=True):
    """Configure application logging; verbose=False keeps only warnings and errors"""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO) if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(processName)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not verbose:
        for name in CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)
