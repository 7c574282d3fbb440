"""structlog setup for hypr-greeter.

The TUI draws on stdout, so log output goes to stderr or a file. The
redact_secrets processor runs before rendering and masks any value
logged under a sensitive key.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, Optional, TextIO

import structlog

from hyprgreet.core.config import LoggingConfig

SENSITIVE_KEYS = frozenset({"password", "response", "secret", "passwd"})
REDACTED = "[REDACTED]"

_log_file: Optional[TextIO] = None


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask values stored under SENSITIVE_KEYS."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(cfg: Optional[LoggingConfig] = None) -> None:
    """Configure structlog from the logging section of the settings."""
    global _log_file

    cfg = cfg or LoggingConfig()

    logger_factory: Any
    if cfg.output == "stderr":
        # Look sys.stderr up per logger so redirected streams are honored.
        logger_factory = lambda *args: structlog.WriteLogger(sys.stderr)
    else:
        if _log_file is not None:
            _log_file.close()
        _log_file = open(cfg.output, "a", encoding="utf-8")
        logger_factory = structlog.WriteLoggerFactory(file=_log_file)

    renderer: Any
    if cfg.format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(cfg.level)
        ),
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )
