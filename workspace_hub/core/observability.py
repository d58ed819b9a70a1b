"""Sentry bootstrap helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from workspace_hub.core.config import get_settings
from workspace_hub.core.logger import get_logger


_SENTRY_INITIALIZED = False


def _call_sentry_init(**kwargs: Any) -> None:
    sentry_sdk.init(**kwargs)


def init_sentry() -> bool:
    """Initialize Sentry once when DSN is configured."""

    global _SENTRY_INITIALIZED
    if _SENTRY_INITIALIZED:
        return True

    settings = get_settings()
    dsn = settings.sentry_dsn.strip()
    if not dsn:
        return False

    _call_sentry_init(
        dsn=dsn,
        environment=settings.env,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
        integrations=[FastApiIntegration()],
    )
    _SENTRY_INITIALIZED = True
    get_logger("workspace_hub.observability").info(
        "sentry_initialized",
        env=settings.env,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )
    return True


@contextmanager
def sentry_scope(
    *,
    workspace_id: Optional[str] = None,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Iterator[None]:
    """Isolate a Sentry scope tagged with request, workspace and user ids."""

    if not _SENTRY_INITIALIZED:
        yield
        return

    with sentry_sdk.new_scope() as scope:
        context_payload: dict[str, str] = {}
        for key, value in (("workspace_id", workspace_id), ("request_id", request_id)):
            if value:
                scope.set_tag(key, value)
                context_payload[key] = value
        if user_id:
            scope.set_user({"id": user_id})
        if context_payload:
            scope.set_context("workspace_hub", context_payload)
        yield


def reset_observability_for_tests() -> None:
    global _SENTRY_INITIALIZED
    _SENTRY_INITIALIZED = False
