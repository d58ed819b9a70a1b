"""Pydantic schemas for workspace stats and dashboard."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from workspace_hub.schemas.activity import WorkspaceActivityResponse, activity_to_response
from workspace_hub.schemas.invitation import InvitationResponse, invitation_to_response
from workspace_hub.schemas.member import WorkspaceMemberResponse, member_to_response
from workspace_hub.schemas.workspace import WorkspaceResponse, workspace_to_response
from workspace_hub.workspaces.dashboard import WorkspaceDashboard, WorkspaceStats


class GrowthMetricsResponse(BaseModel):
    member_growth: float
    listing_growth: float
    booking_growth: float


class WorkspaceStatsResponse(BaseModel):
    total_members: int
    active_members: int
    total_listings: int
    active_listings: int
    total_bookings: int
    monthly_revenue: Decimal
    growth_metrics: GrowthMetricsResponse


class WorkspaceDashboardResponse(BaseModel):
    workspace: WorkspaceResponse
    stats: WorkspaceStatsResponse
    recent_activity: list[WorkspaceActivityResponse]
    members: list[WorkspaceMemberResponse]
    pending_invitations: list[InvitationResponse]


def stats_to_response(stats: WorkspaceStats) -> WorkspaceStatsResponse:
    growth = stats.growth_metrics
    return WorkspaceStatsResponse(
        total_members=stats.total_members,
        active_members=stats.active_members,
        total_listings=stats.total_listings,
        active_listings=stats.active_listings,
        total_bookings=stats.total_bookings,
        monthly_revenue=stats.monthly_revenue,
        growth_metrics=GrowthMetricsResponse(
            member_growth=growth.member_growth,
            listing_growth=growth.listing_growth,
            booking_growth=growth.booking_growth,
        ),
    )


def dashboard_to_response(dashboard: WorkspaceDashboard, *, my_role: Optional[str] = None) -> WorkspaceDashboardResponse:
    return WorkspaceDashboardResponse(
        workspace=workspace_to_response(dashboard.workspace, my_role=my_role),
        stats=stats_to_response(dashboard.stats),
        recent_activity=[activity_to_response(item) for item in dashboard.recent_activity],
        members=[member_to_response(member) for member in dashboard.members],
        pending_invitations=[invitation_to_response(item) for item in dashboard.pending_invitations],
    )
