"""Statistics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from service_hub.api.deps import CurrentAdmin, get_stats_service
from service_hub.schemas.stats import DashboardStatsResponse, PublicStatsResponse
from service_hub.services.stats.service import StatsService

router = APIRouter(tags=["stats"])

StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]


@router.get("", response_model=PublicStatsResponse)
async def get_public_stats(stats_service: StatsServiceDep) -> PublicStatsResponse:
    return PublicStatsResponse(**await stats_service.public_stats())


@router.get("/dashboard", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    stats_service: StatsServiceDep,
    admin: CurrentAdmin,
) -> DashboardStatsResponse:
    return DashboardStatsResponse(**await stats_service.dashboard())
