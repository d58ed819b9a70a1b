"""Workspace type catalogue (member caps and feature sets per type)."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal

import yaml

from workspace_hub.core.config import get_settings


WorkspaceType = Literal["personal", "team", "business", "enterprise"]
WORKSPACE_TYPES: tuple[str, ...] = ("personal", "team", "business", "enterprise")

UNLIMITED_MEMBERS = -1


@dataclass(frozen=True)
class WorkspaceTypeConfig:
    name: str
    description: str
    max_members: int
    features: tuple[str, ...]

    @property
    def is_unlimited(self) -> bool:
        return self.max_members == UNLIMITED_MEMBERS


DEFAULT_WORKSPACE_TYPE_CONFIG: Dict[str, WorkspaceTypeConfig] = {
    "personal": WorkspaceTypeConfig(
        name="Personal",
        description="For individual use",
        max_members=1,
        features=("basic_listings", "personal_bookings"),
    ),
    "team": WorkspaceTypeConfig(
        name="Team",
        description="For small teams",
        max_members=10,
        features=("team_collaboration", "shared_listings", "member_management"),
    ),
    "business": WorkspaceTypeConfig(
        name="Business",
        description="For growing businesses",
        max_members=50,
        features=("advanced_analytics", "custom_branding", "priority_support"),
    ),
    "enterprise": WorkspaceTypeConfig(
        name="Enterprise",
        description="For large organizations",
        max_members=UNLIMITED_MEMBERS,
        features=("enterprise_sso", "api_access", "custom_integrations", "dedicated_support"),
    ),
}


def _resolve_types_path() -> Path:
    configured = Path(get_settings().workspace_types_file_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


def _parse_entry(workspace_type: str, raw: Dict[str, Any]) -> WorkspaceTypeConfig:
    fallback = DEFAULT_WORKSPACE_TYPE_CONFIG[workspace_type]
    max_members = raw.get("max_members", fallback.max_members)
    if not isinstance(max_members, int) or (max_members < 1 and max_members != UNLIMITED_MEMBERS):
        raise ValueError(f"Invalid max_members for workspace type {workspace_type}")
    features = raw.get("features", list(fallback.features))
    if not isinstance(features, list):
        raise ValueError(f"Invalid features for workspace type {workspace_type}")
    return WorkspaceTypeConfig(
        name=str(raw.get("name", fallback.name)),
        description=str(raw.get("description", fallback.description)),
        max_members=max_members,
        features=tuple(str(feature) for feature in features),
    )


@lru_cache(maxsize=1)
def load_workspace_types() -> Dict[str, WorkspaceTypeConfig]:
    """Merge the YAML catalogue over the built-in defaults."""

    catalogue = dict(DEFAULT_WORKSPACE_TYPE_CONFIG)
    types_path = _resolve_types_path()
    if not types_path.exists():
        return catalogue

    with types_path.open("r", encoding="utf-8") as file:
        content = yaml.safe_load(file) or {}
    if not isinstance(content, dict):
        raise ValueError("Invalid workspace types file format")

    for workspace_type, raw in content.items():
        if workspace_type not in WORKSPACE_TYPES or not isinstance(raw, dict):
            continue
        catalogue[workspace_type] = _parse_entry(workspace_type, raw)
    return catalogue


def get_workspace_type_config(workspace_type: str) -> WorkspaceTypeConfig:
    catalogue = load_workspace_types()
    if workspace_type not in catalogue:
        raise KeyError(f"Unknown workspace type: {workspace_type}")
    return catalogue[workspace_type]
