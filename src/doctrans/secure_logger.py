"""
Logging setup that redacts credentials before anything reaches a handler.

The translate command runs with an Anthropic key in its environment and logs raw service
errors, so every handler installed here goes through ``SecureFormatter``.

Usage:
    from .secure_logger import setup_logging
    setup_logging(logging.INFO, log_file=Path("logs/doctrans.log"))
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Pattern

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SecureFormatter(logging.Formatter):
    """Formatter that redacts sensitive information from log messages."""

    SENSITIVE_PATTERNS: list[tuple[Pattern[str], str]] = [
        # Anthropic keys (sk-ant-...)
        (re.compile(r"sk-ant-[a-zA-Z0-9_-]+"), "[REDACTED_API_KEY]"),
        # x-api-key / api_key headers and assignments
        (
            re.compile(r'["\']?(?:x-)?api[_-]?key["\']?\s*[:=]\s*["\']?[a-zA-Z0-9_-]{12,}["\']?', re.IGNORECASE),
            "api_key=[REDACTED]",
        ),
        (re.compile(r"Bearer\s+[a-zA-Z0-9._-]+"), "Bearer [REDACTED_TOKEN]"),
        # Passwords embedded in database URLs
        (re.compile(r"(://[^:/@\s]+:)[^@\s]+@"), r"\1[REDACTED]@"),
    ]

    def format(self, record: logging.LogRecord) -> str:
        sanitized = super().format(record)
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            sanitized = pattern.sub(replacement, sanitized)
        return sanitized


def setup_logging(level: int = logging.INFO, log_file: str | Path | None = None) -> logging.Logger:
    """Configure the root logger with a console handler and, optionally, a file handler."""
    formatter = SecureFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # The SDK's HTTP client logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return root_logger
