"""
Metric Config Router
====================

WHAT:
    Metric catalog listing plus read/write of per-entity metric display
    configuration (ordered visible metric keys).

WHY:
    Users pick and drag-reorder the metrics shown on each card. The order
    they save is the order they get back.

REFERENCES:
    - adsight/services/metric_config_service.py
    - adsight/metrics/registry.py
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from adsight.database import get_db
from adsight.deps import get_organization_id
from adsight.hierarchy import resolve_entity_type
from adsight.metrics.registry import DEFAULT_CATALOG, DEFAULT_VISIBLE_METRICS
from adsight.routers.campaign_insights import definition_out
from adsight.schemas import (
    MetricCatalogResponse,
    MetricConfigResponse,
    MetricConfigSaved,
    MetricConfigUpdate,
    VisibleMetricsResponse,
)
from adsight.services.metric_config_service import (
    DEFAULT_ENTITY_ID,
    MetricConfigSaveError,
    MetricConfigService,
)

router = APIRouter(
    prefix="/metric-config",
    tags=["Metric Config"],
    responses={
        400: {"description": "Invalid entity type"},
    },
)


def _entity_type_or_400(entity_type: str):
    try:
        return resolve_entity_type(entity_type)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/catalog", response_model=MetricCatalogResponse)
def get_catalog():
    """Every displayable metric and the default visible list."""
    return MetricCatalogResponse(
        metrics=[definition_out(d) for d in DEFAULT_CATALOG.definitions],
        default_visible_metrics=list(DEFAULT_VISIBLE_METRICS),
    )


@router.get("/{entity_type}", response_model=MetricConfigResponse)
def get_level_config(
    entity_type: str,
    *,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    client_id: str = Query(...),
):
    """All stored configurations for a level, in one query."""
    resolved = _entity_type_or_400(entity_type)
    config = MetricConfigService(db).get_config(organization_id, client_id, resolved)
    return MetricConfigResponse(
        entity_type=resolved,
        configs={entity_id: list(keys) for entity_id, keys in config.items()},
        default_metrics=config.resolve_keys(None),
    )


@router.get("/{entity_type}/visible", response_model=VisibleMetricsResponse)
def get_visible_metrics(
    entity_type: str,
    *,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    client_id: str = Query(...),
    entity_id: Optional[str] = Query(None, description="Omit for the level default"),
):
    """Resolved metrics for one entity: own config → __default__ → defaults."""
    resolved = _entity_type_or_400(entity_type)
    metrics = MetricConfigService(db).get_visible_metrics(organization_id, client_id, resolved, entity_id)
    return VisibleMetricsResponse(
        entity_type=resolved,
        entity_id=entity_id,
        metrics=[definition_out(d) for d in metrics],
    )


@router.put("/{entity_type}", response_model=MetricConfigSaved)
def save_level_config(
    entity_type: str,
    payload: MetricConfigUpdate,
    *,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    client_id: str = Query(...),
):
    """Upsert the ordered metric keys for an entity (or the level default)."""
    resolved = _entity_type_or_400(entity_type)
    service = MetricConfigService(db)
    try:
        stored = service.save_config(
            organization_id,
            client_id,
            resolved,
            payload.entity_id,
            payload.visible_metrics,
        )
    except MetricConfigSaveError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return MetricConfigSaved(
        entity_type=resolved,
        entity_id=payload.entity_id or DEFAULT_ENTITY_ID,
        visible_metrics=stored,
    )
