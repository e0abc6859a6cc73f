"""Centralized logging configuration."""

import logging
import re

from config import settings

# Bearer tokens and Yodlee user login names must never reach log output.
_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+"),
    re.compile(r"(loginName['\"]?\s*[:=]\s*['\"]?)[^'\",\s}]+"),
)


class RedactSecretsFilter(logging.Filter):
    """Mask access tokens and login names in rendered log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in _SECRET_PATTERNS:
            redacted = pattern.sub(r"\1[REDACTED]", redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging() -> None:
    """Configure logging for the application.

    Sets root logger level from settings.LOG_LEVEL, suppresses noisy
    third-party loggers to WARNING and attaches the secret-redacting
    filter to every root handler.
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, settings.LOG_LEVEL),
        force=True,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RedactSecretsFilter())

    # httpx logs full request URLs at INFO, which include query parameters
    for name in (
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "httpx",
        "httpcore",
        "alembic",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)
