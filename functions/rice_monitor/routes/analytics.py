from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from rice_monitor.analytics import AnalyticsService
from rice_monitor.dependencies import get_analytics_service, get_current_user
from rice_monitor.schemas import DashboardResponse, TrendsResponse
from shared.types import User

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.dashboard(user)


@router.get("/trends", response_model=TrendsResponse)
def trends(
    days: int = Query(30, ge=1, le=3650),
    user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return analytics.trends(user, days=days)


@router.get("/reports")
def reports(
    report_type: str = Query("summary", alias="type"),
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """
    `type` is one of summary, detailed or field_analysis; dates are YYYY-MM-DD.
    """
    return analytics.report(
        user, report_type=report_type, start_date=start_date, end_date=end_date
    )
