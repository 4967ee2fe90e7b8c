"""Logging setup and log-safe text helpers for ProjectAttach."""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "projectattach.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "projectattach"

# Account credentials that travel alongside project descriptors
_SENSITIVE_PATTERNS = [
    (
        re.compile(r"<authenticator>[^<]*</authenticator>"),
        "<authenticator>[REDACTED]</authenticator>",
    ),
    (re.compile(r"<passwd_hash>[^<]*</passwd_hash>"), "<passwd_hash>[REDACTED]</passwd_hash>"),
    (re.compile(r"authenticator=[a-fA-F0-9_]+"), "authenticator=[REDACTED]"),
    (re.compile(r"(password|passwd)=\S+"), r"\1=[REDACTED]"),
    (re.compile(r"Bearer [a-zA-Z0-9._-]+"), "Bearer [REDACTED]"),
]


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """Route projectattach logs to a rotating file, and optionally stderr.

    Replaces any handlers installed by an earlier call. PROJECTATTACH_LOG_DIR
    and PROJECTATTACH_LOG_LEVEL fill in log_dir and level when they are None.

    Returns:
        The package logger.
    """
    log_dir = Path(log_dir or os.environ.get("PROJECTATTACH_LOG_DIR", DEFAULT_LOG_DIR))
    log_dir.mkdir(parents=True, exist_ok=True)
    level = (level or os.environ.get("PROJECTATTACH_LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    log_level = logging.getLevelName(level)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    log_path = log_dir / log_file
    handlers: list[logging.Handler] = [
        RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for old in logger.handlers:
        old.close()
    logger.handlers.clear()
    logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info("Logging to %s at %s", log_path, logging.getLevelName(log_level))
    return logger


def truncate_output(text: str, max_length: int = 5000) -> str:
    """Cap text at max_length characters, noting how much was dropped."""
    dropped = len(text) - max_length
    if dropped <= 0:
        return text
    return f"{text[:max_length]}\n... [truncated, {dropped} more chars]"


def sanitize_for_log(text: str) -> str:
    """Redact account authenticators, password hashes and tokens from text."""
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text
