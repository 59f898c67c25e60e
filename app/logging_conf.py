"""Logging configuration for the service."""

import logging
import sys

from app.config import get_settings

EVENT_ID = {
    "TRYON_RECEIVED": 2000,
    "TRYON_STAGE": 2001,
    "TRYON_COMPLETED": 2002,
    "TRYON_FAILED": 2003,
    "UPLOAD_FAILED": 2004,
    "LEDGER_DUPLICATE": 2005,
    "LEDGER_WRITE_FAILED": 2006,
}


def setup_logging() -> logging.Logger:
    """Configure root logging for the application."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    return logging.getLogger("tryon")


def log_event(logger: logging.Logger, level: int, event: str, message: str, **fields) -> None:
    """Log a named pipeline event so operators can filter on it."""
    extra = {"event": event, "event_id": EVENT_ID[event], **fields}
    details = " ".join(f"{k}={v}" for k, v in fields.items())
    logger.log(level, "[%s] %s %s", event, message, details, extra=extra)
