"""structlog configuration shared by the API and the services."""

from __future__ import annotations

import logging
from typing import Any, Optional

import structlog

from workspace_hub.core.config import get_settings


_CONFIGURED = False
_CONTEXT_KEYS = ("request_id", "workspace_id", "user_id")

# Invitation tokens are bearer credentials; only their fingerprint may be logged.
REDACTED_KEYS = frozenset({"token", "access_token", "authorization", "secret_key", "password"})
REDACTED = "[redacted]"


def mask_email(email: str) -> str:
    local, sep, domain = email.partition("@")
    if not sep:
        return REDACTED
    return f"{local[:1]}***@{domain}"


def _add_default_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    del logger, method_name
    for key in _CONTEXT_KEYS:
        event_dict.setdefault(key, None)
    return event_dict


def _redact_sensitive(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    del logger, method_name
    for key in list(event_dict):
        if key.lower() in REDACTED_KEYS and event_dict[key] is not None:
            event_dict[key] = REDACTED
    email = event_dict.get("email")
    if isinstance(email, str) and email:
        event_dict["email"] = mask_email(email)
    return event_dict


def build_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        _add_default_context,
        _redact_sensitive,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.JSONRenderer(),
    ]


def configure_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=build_processors(),
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """JSON logger; ``name`` is emitted as the ``logger`` field."""

    configure_logging()
    if name:
        return structlog.get_logger().bind(logger=name)
    return structlog.get_logger()


def bind_request_context(
    request_id: str,
    workspace_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> None:
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        workspace_id=workspace_id,
        user_id=user_id,
    )


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
