"""Logging configuration for the application."""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "watchdog")

# Bearer tokens and common provider key prefixes (sk-, gsk_, AIza, csk-)
SECRET_PATTERN = re.compile(
    r"(Bearer\s+)[A-Za-z0-9._\-]{8,}|\b(?:sk-|gsk_|csk-|AIza)[A-Za-z0-9_\-]{8,}"
)


class SecretRedactingFilter(logging.Filter):
    """Replace anything that looks like a provider API key with a placeholder."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = SECRET_PATTERN.sub(lambda m: (m.group(1) or "") + "[REDACTED]", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    include_timestamp: bool = True,
) -> None:
    """
    Configure application logging.

    Every handler redacts strings that look like provider API keys, and the
    HTTP libraries that log request details are quieted to WARNING.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for log output
        include_timestamp: Whether to include timestamps
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if include_timestamp:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"
    else:
        fmt = "%(levelname)-8s | %(name)s | %(message)s"
        datefmt = None

    formatter = logging.Formatter(fmt, datefmt=datefmt)
    redactor = SecretRedactingFilter()

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Streamlit reruns the script; avoid stacking handlers
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)
    console.addFilter(redactor)
    root.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redactor)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("Logging configured: level=%s", level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
