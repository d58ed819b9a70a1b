from __future__ import annotations

import os
from pathlib import Path
from typing import Optional
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "workspace-hub-test-secret-key-0123456789abcdef")

from workspace_hub.auth.jwt import AuthContext, create_access_token
from workspace_hub.core.config import get_settings
from workspace_hub.storage.db import Base, load_models
from workspace_hub.storage.models import User
from workspace_hub.workspaces.service import create_workspace
from workspace_hub.workspaces.types import load_workspace_types


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    load_workspace_types.cache_clear()
    yield
    get_settings.cache_clear()
    load_workspace_types.cache_clear()


def build_sqlite_session_factory(database_path: Optional[Path] = None) -> sessionmaker:
    """In-memory by default; pass a file path when several connections must share the data."""

    load_models()
    if database_path is None:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    else:
        engine = create_engine(
            f"sqlite+pysqlite:///{database_path}",
            connect_args={"check_same_thread": False},
            future=True,
        )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def build_session() -> Session:
    return build_sqlite_session_factory()()


def make_actor(email: str) -> AuthContext:
    return AuthContext(user_id=str(uuid.uuid4()), email=email)


def add_user(session: Session, email: str) -> AuthContext:
    actor = make_actor(email)
    session.add(User(id=actor.user_id, email=email))
    session.commit()
    return actor


def seed_workspace(
    session: Session,
    *,
    owner: AuthContext,
    name: str = "Acme Rentals",
    slug: str = "acme-rentals",
    workspace_type: str = "team",
):
    return create_workspace(session, actor=owner, name=name, slug=slug, workspace_type=workspace_type)


def auth_headers(actor: AuthContext) -> dict[str, str]:
    token, _ = create_access_token(actor)
    return {"Authorization": f"Bearer {token}"}
