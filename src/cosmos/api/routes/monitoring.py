from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from cosmos.api.deps import get_orchestrator
from cosmos.domain.models import ApplicationsInteractions, SpecSnapshot
from cosmos.monitoring import MonitoringOrchestrator

router = APIRouter(prefix="/monitoring")


@router.post("/update/{application}", status_code=status.HTTP_200_OK)
async def update_monitoring(
    application: str,
    orchestrator: MonitoringOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> dict[str, Any]:
    """Re-read the application's manifest and OpenAPI document now."""
    report = await orchestrator.update_application_monitoring(application)
    return report.to_dict()


@router.get("/interactions", response_model=ApplicationsInteractions)
async def get_organization_interactions(
    teams: str | None = Query(default=None, description="Comma-separated team names"),
    include_neighbors: bool = Query(default=False, alias="includeNeighbors"),
    orchestrator: MonitoringOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> ApplicationsInteractions:
    team_names = [t.strip() for t in teams.split(",") if t.strip()] if teams else None
    return await orchestrator.get_applications_interactions(team_names, include_neighbors)


@router.get("/interactions/{application}", response_model=ApplicationsInteractions)
async def get_application_interactions(
    application: str,
    orchestrator: MonitoringOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> ApplicationsInteractions:
    return await orchestrator.get_application_interactions(application)


@router.get("/openapi/{application}", response_model=SpecSnapshot)
async def get_application_openapi(
    application: str,
    orchestrator: MonitoringOrchestrator = Depends(get_orchestrator),  # noqa: B008
) -> SpecSnapshot:
    return await orchestrator.get_application_openapi(application)
