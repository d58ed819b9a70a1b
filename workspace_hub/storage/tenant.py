"""Workspace-scoped DB context helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session, SessionTransaction


WORKSPACE_CONTEXT_KEY = "workspace_id"

_SET_CONTEXT_SQL = text("SELECT set_config('app.current_workspace_id', :workspace_id, true)")


def _apply_context(connection: Connection, workspace_id: Optional[str]) -> None:
    if connection.dialect.name != "postgresql":
        return
    connection.execute(_SET_CONTEXT_SQL, {"workspace_id": workspace_id or ""})


@event.listens_for(Session, "after_begin")
def _reapply_workspace_context(session: Session, transaction: SessionTransaction, connection: Connection) -> None:
    # set_config(..., true) is transaction-local; services commit more than once per request.
    del transaction
    workspace_id = session.info.get(WORKSPACE_CONTEXT_KEY)
    if workspace_id:
        _apply_context(connection, workspace_id)


def set_workspace_context(session: Session, workspace_id: Optional[str]) -> None:
    """Set workspace context for PostgreSQL RLS policies.

    The id is kept in ``session.info`` and re-applied at the start of every
    transaction. An empty context leaves the policies permissive, which
    cross-workspace reads such as token lookup and the caller's workspace list
    rely on.
    """

    if workspace_id:
        session.info[WORKSPACE_CONTEXT_KEY] = workspace_id
    else:
        session.info.pop(WORKSPACE_CONTEXT_KEY, None)

    bind = session.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return
    session.execute(_SET_CONTEXT_SQL, {"workspace_id": workspace_id or ""})


def reset_workspace_context(session: Session) -> None:
    set_workspace_context(session=session, workspace_id=None)


@contextmanager
def workspace_scope(session: Session, workspace_id: str) -> Iterator[Session]:
    set_workspace_context(session, workspace_id)
    try:
        yield session
    finally:
        reset_workspace_context(session)
