import logging
import time
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import quote

from shared.cache import Cache
from shared.config import ServiceConfig, config

__all__ = [
    "Cache",
    "ServiceConfig",
    "config",
    "ensure_directory",
    "epoch_millis",
    "sanitize_filename",
    "setup_logging",
    "to_epoch_millis",
]


def setup_logging(service_name: str, log_level: str | None = None) -> logging.Logger:
    """Setup logging configuration for a service"""
    logger = logging.getLogger(service_name)
    level = log_level or config.get("log_level", "INFO")
    logger.setLevel(getattr(logging, level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"%(asctime)s - {service_name} - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage.

    Percent-encodes every character outside ``[A-Za-z0-9_.~-]``, so two distinct
    names never share a file.
    """
    return quote(filename, safe="")


def ensure_directory(path: str) -> None:
    """Ensure directory exists, create if not"""
    Path(path).mkdir(parents=True, exist_ok=True)


def epoch_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)
