from fastapi import APIRouter, Depends, Query
from typing import List
from bookify.core.dependencies import require_admin
from bookify.models.analytics import (
    OrgEarnings, EventAttendance, UserActivity, UserPayments, TopEvent, UserLoyalty,
    RefundableTickets, OrgRevenueBreakdown, UserEngagement, DashboardStats
)
from bookify.services import analytics_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/org-earnings", response_model=List[OrgEarnings])
async def org_earnings():
    return await analytics_service.get_org_earnings()


@router.get("/event-attendance", response_model=List[EventAttendance])
async def event_attendance():
    return await analytics_service.get_event_attendance()


@router.get("/user-activity", response_model=UserActivity)
async def user_activity():
    return await analytics_service.get_user_activity()


@router.get("/user-payments", response_model=List[UserPayments])
async def user_payments():
    return await analytics_service.get_user_payments()


@router.get("/top-events", response_model=List[TopEvent])
async def top_events(limit: int = Query(10, ge=1, le=100)):
    return await analytics_service.get_top_events(limit)


@router.get("/user-loyalty", response_model=List[UserLoyalty])
async def user_loyalty():
    return await analytics_service.get_user_loyalty()


@router.get("/refundable-tickets", response_model=List[RefundableTickets])
async def refundable_tickets():
    return await analytics_service.get_refundable_tickets()


@router.get("/org-revenue-breakdown", response_model=List[OrgRevenueBreakdown])
async def org_revenue_breakdown():
    return await analytics_service.get_org_revenue_breakdown()


@router.get("/user-engagement", response_model=List[UserEngagement])
async def user_engagement():
    return await analytics_service.get_user_engagement()


@router.get("/dashboard-stats", response_model=DashboardStats)
async def dashboard_stats():
    return await analytics_service.get_dashboard_stats()
