"""Environment-derived settings for the ULID server."""

from __future__ import annotations

import logging

LOG_LEVEL_ENV = "ULID_GEN_MCP_LOG"
GUARD_TIMEOUT_ENV = "ULID_GEN_MCP_GUARD_TIMEOUT"

DEFAULT_LOG_LEVEL = "debug"
DEFAULT_GUARD_TIMEOUT = 5.0

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Accept the level names people type in RUST_LOG-style filters too.
_LEVEL_ALIASES = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


def parse_log_level(value: str) -> int:
    """Translate a level name or number into a :mod:`logging` level.

    Raises ``ValueError`` for anything unrecognized.
    """
    text = value.strip().lower()
    if text.isdigit():
        return int(text)
    try:
        return _LEVEL_ALIASES[text]
    except KeyError:
        valid = ", ".join(sorted(_LEVEL_ALIASES))
        raise ValueError(f"Unknown log level {value!r}. Valid: {valid}") from None
