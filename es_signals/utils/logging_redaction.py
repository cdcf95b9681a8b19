"""
Logging redaction helpers.
Redacts market-data credentials from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Authorization: Basic <base64> (Databento uses the API key as username)
    (re.compile(r"(Basic\s+)([A-Za-z0-9+/=]+)"), r"\1[REDACTED]"),
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._]+)"), r"\1[REDACTED]"),
    # Databento keys are prefixed with "db-"
    (re.compile(r"\bdb-[A-Za-z0-9]{16,}"), "db-[REDACTED]"),
    # Generic api key/secret key/value pairs
    (re.compile(r"(?i)(api[_-]?key|api[_-]?secret)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed format args; let the handler report it unchanged
            return True
        record.msg = redact_message(message)
        record.args = ()
        return True


def _has_filter(filterer: logging.Filterer) -> bool:
    return any(isinstance(existing, RedactingFilter) for existing in filterer.filters)


def install_redaction_filter() -> None:
    # Logger filters do not see propagated records, so handlers get one too
    root = logging.getLogger()
    targets: list[logging.Filterer] = [root, *root.handlers]
    for target in targets:
        if not _has_filter(target):
            target.addFilter(RedactingFilter())
