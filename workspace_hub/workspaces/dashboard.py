"""Dashboard read model: workspace, stats, recent activity, members and pending invites."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from workspace_hub.core.config import get_settings
from workspace_hub.core.logger import get_logger
from workspace_hub.storage.models import (
    Booking,
    Listing,
    Workspace,
    WorkspaceActivity,
    WorkspaceInvitation,
    WorkspaceMember,
)
from workspace_hub.storage.tenant import workspace_scope
from workspace_hub.workspaces.activity import get_workspace_activity
from workspace_hub.workspaces.errors import NotFoundError
from workspace_hub.workspaces.invitations import get_workspace_invitations
from workspace_hub.workspaces.members import get_workspace_members
from workspace_hub.workspaces.service import get_workspace


T = TypeVar("T")

logger = get_logger("workspace_hub.dashboard")


@dataclass(frozen=True)
class GrowthMetrics:
    member_growth: float = 0.0
    listing_growth: float = 0.0
    booking_growth: float = 0.0


@dataclass(frozen=True)
class WorkspaceStats:
    total_members: int = 0
    active_members: int = 0
    total_listings: int = 0
    active_listings: int = 0
    total_bookings: int = 0
    monthly_revenue: Decimal = Decimal("0")
    growth_metrics: GrowthMetrics = field(default_factory=GrowthMetrics)


@dataclass(frozen=True)
class WorkspaceDashboard:
    workspace: Workspace
    stats: WorkspaceStats
    recent_activity: list[WorkspaceActivity]
    members: list[WorkspaceMember]
    pending_invitations: list[WorkspaceInvitation]


def _month_bounds(today: date) -> tuple[date, date]:
    start = today.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def _growth(added: int, base: int) -> float:
    """Percent growth of this month's additions over the count before the month."""

    if base <= 0:
        return 0.0
    return round(added / base * 100, 2)


def _count(session: Session, statement: Any) -> int:
    return int(session.scalar(statement) or 0)


def get_workspace_stats(session: Session, *, workspace_id: str, today: Optional[date] = None) -> WorkspaceStats:
    today = today or datetime.now(timezone.utc).date()
    month_start, next_month = _month_bounds(today)
    month_start_at = datetime.combine(month_start, time.min, tzinfo=timezone.utc)

    members = select(func.count(WorkspaceMember.id)).where(WorkspaceMember.workspace_id == workspace_id)
    listings = select(func.count(Listing.id)).where(Listing.workspace_id == workspace_id)
    bookings = select(func.count(Booking.id)).where(Booking.workspace_id == workspace_id)

    members_before = _count(session, members.where(WorkspaceMember.joined_at < month_start_at))
    listings_before = _count(session, listings.where(Listing.created_at < month_start_at))
    bookings_before = _count(session, bookings.where(Booking.created_at < month_start_at))

    revenue = session.scalar(
        select(func.coalesce(func.sum(Booking.total_amount), 0)).where(
            Booking.workspace_id == workspace_id,
            Booking.status == "completed",
            Booking.booking_date >= month_start,
            Booking.booking_date < next_month,
        )
    )

    return WorkspaceStats(
        total_members=_count(session, members),
        active_members=_count(session, members.where(WorkspaceMember.is_active.is_(True))),
        total_listings=_count(session, listings),
        active_listings=_count(session, listings.where(Listing.is_active.is_(True))),
        total_bookings=_count(session, bookings),
        monthly_revenue=Decimal(str(revenue or 0)).quantize(Decimal("0.01")),
        growth_metrics=GrowthMetrics(
            member_growth=_growth(
                _count(session, members.where(WorkspaceMember.joined_at >= month_start_at)), members_before
            ),
            listing_growth=_growth(
                _count(session, listings.where(Listing.created_at >= month_start_at)), listings_before
            ),
            booking_growth=_growth(
                _count(session, bookings.where(Booking.created_at >= month_start_at)), bookings_before
            ),
        ),
    )


def _read(session_factory: sessionmaker, workspace_id: str, reader: Callable[[Session], T]) -> T:
    with session_factory() as session:
        with workspace_scope(session, workspace_id):
            return reader(session)


def get_workspace_dashboard(
    session_factory: sessionmaker,
    *,
    workspace_id: str,
    max_workers: Optional[int] = None,
    activity_limit: Optional[int] = None,
) -> WorkspaceDashboard:
    """Compose the dashboard from five independent reads run in parallel.

    Each read gets its own session. Only a missing workspace fails the call;
    the other sections fall back to empty values and log a warning.
    """

    settings = get_settings()
    workers = max_workers or settings.dashboard_max_workers
    limit = activity_limit or settings.dashboard_activity_limit

    readers: dict[str, Callable[[Session], Any]] = {
        "workspace": lambda s: get_workspace(s, workspace_id),
        "stats": lambda s: get_workspace_stats(s, workspace_id=workspace_id),
        "recent_activity": lambda s: get_workspace_activity(s, workspace_id=workspace_id, limit=limit),
        "members": lambda s: get_workspace_members(s, workspace_id=workspace_id),
        "pending_invitations": lambda s: get_workspace_invitations(s, workspace_id=workspace_id),
    }
    fallbacks: dict[str, Callable[[], Any]] = {
        "stats": WorkspaceStats,
        "recent_activity": list,
        "members": list,
        "pending_invitations": list,
    }

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dashboard") as executor:
        futures = {
            name: executor.submit(_read, session_factory, workspace_id, reader) for name, reader in readers.items()
        }

        workspace = futures["workspace"].result()
        if workspace is None:
            raise NotFoundError("Workspace not found")

        sections: dict[str, Any] = {}
        for name, fallback in fallbacks.items():
            try:
                sections[name] = futures[name].result()
            except Exception as exc:
                logger.warning(
                    "dashboard_section_failed",
                    workspace_id=workspace_id,
                    section=name,
                    error=str(exc),
                )
                sections[name] = fallback()

    return WorkspaceDashboard(workspace=workspace, **sections)
