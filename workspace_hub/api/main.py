"""FastAPI application entrypoint for workspace_hub."""

from __future__ import annotations

from time import perf_counter
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from workspace_hub.auth.middleware import AUTH_CONTEXT_KEY, resolve_request_auth_context
from workspace_hub.core.config import get_settings
from workspace_hub.core.logger import bind_request_context, clear_request_context, get_logger
from workspace_hub.core.metrics import record_http_request, render_prometheus_metrics
from workspace_hub.core.observability import init_sentry, sentry_scope
from workspace_hub.storage.db import load_models
from workspace_hub.storage.db import test_connection as test_db_connection
from workspace_hub.workspaces.errors import WorkspaceError
from workspace_hub.workspaces.router import invitations_router, me_router
from workspace_hub.workspaces.router import router as workspaces_router


settings = get_settings()
logger = get_logger("workspace_hub.api")

app = FastAPI(title=settings.app_name, version=settings.app_version)


def _resolve_workspace_id(request: Request) -> Optional[str]:
    header_value = request.headers.get("x-workspace-id")
    if header_value:
        return header_value

    segments = [segment for segment in request.url.path.split("/") if segment]
    if len(segments) >= 2 and segments[0] == "workspaces":
        return segments[1]
    return None


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    started_at = perf_counter()
    request_id = request.headers.get("x-request-id", str(uuid4()))
    auth_context = resolve_request_auth_context(request)
    setattr(request.state, AUTH_CONTEXT_KEY, auth_context)

    workspace_id = _resolve_workspace_id(request)
    user_id = auth_context.user_id if auth_context is not None else None
    bind_request_context(request_id=request_id, workspace_id=workspace_id, user_id=user_id)

    status_code = 500
    try:
        with sentry_scope(workspace_id=workspace_id, request_id=request_id, user_id=user_id):
            response = await call_next(request)
        status_code = int(response.status_code)
    finally:
        duration = perf_counter() - started_at
        if settings.metrics_enabled:
            record_http_request(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_seconds=duration,
            )
        clear_request_context()

    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(WorkspaceError)
async def workspace_error_handler(request: Request, exc: WorkspaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("workspace_error", path=request.url.path, detail=exc.detail)
    else:
        logger.info(
            "workspace_request_rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error=type(exc).__name__,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.on_event("startup")
def on_startup() -> None:
    load_models()
    sentry_enabled = init_sentry()
    logger.info(
        "application_startup",
        env=settings.env,
        version=settings.app_version,
        sentry_enabled=sentry_enabled,
        metrics_enabled=settings.metrics_enabled,
        public_base_url_configured=bool(settings.app_public_base_url),
    )


@app.get("/health")
def health() -> JSONResponse:
    db_ok, db_error = test_db_connection()
    payload = {
        "status": "ok" if db_ok else "degraded",
        "env": settings.env,
        "services": {
            "database": {"ok": db_ok, "error": db_error},
        },
    }
    return JSONResponse(content=payload, status_code=200 if db_ok else 503)


@app.get("/version")
def version() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }


@app.get("/metrics")
def metrics() -> PlainTextResponse:
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled\n", status_code=404)

    payload = render_prometheus_metrics(
        app_name=settings.app_name,
        app_version=settings.app_version,
        env=settings.env,
    )
    return PlainTextResponse(
        payload,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(workspaces_router)
app.include_router(invitations_router)
app.include_router(me_router)
