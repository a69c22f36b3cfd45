"""Logging helpers with redaction."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict


_SENSITIVE_KEYS = re.compile(r"(token|secret|api[_-]?key|password|authorization)", re.IGNORECASE)

MAX_LOGGED_RESPONSE_CHARS = 256 * 1024


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    redacted: Dict[str, Any] = {}
    for key, value in payload.items():
        if _SENSITIVE_KEYS.search(str(key)):
            redacted[key] = "***REDACTED***"
        elif isinstance(value, dict):
            redacted[key] = redact_payload(value)
        else:
            redacted[key] = value
    return redacted


def truncate_for_log(text: str, limit: int = MAX_LOGGED_RESPONSE_CHARS) -> str:
    if len(text) < limit:
        return text
    return text[:limit] + "..."
