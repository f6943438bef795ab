"""
Campaign Insights Router
========================

WHAT:
    FastAPI router exposing the campaign explorer: aggregated entities per
    drill level, totals, charts, the period pivot, period buckets and the
    drill-down navigator transitions.

WHY:
    The explorer UI needs one well-defined API for campaign → ad set → ad
    analytics without re-implementing aggregation or derived metrics in the
    frontend.

TENANCY:
    Every request is scoped by the `X-Organization-ID` header and the
    `client_id` query parameter.

REFERENCES:
    - adsight/services/campaign_explorer_service.py (view composition)
    - adsight/services/period_bucketer.py
    - adsight/services/drilldown.py
    - adsight/schemas.py::ExplorerResponse
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from adsight.database import get_db
from adsight.deps import Settings, get_organization_id, get_settings
from adsight.hierarchy import level_config, resolve_level
from adsight.metrics.registry import MetricDefinition
from adsight.schemas import (
    BreadcrumbOut,
    DailyPointOut,
    EntityPeriodsOut,
    ExplorerEntityRow,
    ExplorerMeta,
    ExplorerResponse,
    ExplorerTotals,
    MetricDefinitionOut,
    MetricReadingOut,
    NavigationRequest,
    NavigationResponse,
    NavigatorState,
    ParentScopeOut,
    PeriodCellOut,
    PeriodOut,
    PeriodsResponse,
    SpendSliceOut,
)
from adsight.services.campaign_explorer_service import CampaignExplorerService, MetricReading
from adsight.services.drilldown import DrillDownNavigator
from adsight.services.insight_query_service import build_query
from adsight.services.period_bucketer import PeriodBuckets, PeriodTotals, build_periods


router = APIRouter(
    prefix="/campaign-insights",
    tags=["Campaign Insights"],
    responses={
        400: {"description": "Invalid parameters"},
    },
)


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def definition_out(definition: MetricDefinition) -> MetricDefinitionOut:
    return MetricDefinitionOut(
        key=definition.key,
        label=definition.label,
        short_label=definition.short_label,
        type=definition.type.value,
        computed=definition.computed,
        requires=list(definition.requires),
        color=definition.color,
    )


def _reading_out(reading: MetricReading) -> MetricReadingOut:
    return MetricReadingOut(
        key=reading.key,
        label=reading.label,
        short_label=reading.short_label,
        type=reading.type,
        value=reading.value,
        formatted=reading.formatted,
    )


def _cell_out(cell: PeriodTotals) -> PeriodCellOut:
    return PeriodCellOut(
        impressions=cell.impressions,
        clicks=cell.clicks,
        spend=cell.spend,
        leads=cell.leads,
        conversions=cell.conversions,
        revenue=cell.revenue,
    )


def _periods_out(buckets: PeriodBuckets) -> PeriodsResponse:
    return PeriodsResponse(
        granularity=buckets.granularity.value,
        periods=[PeriodOut(label=p.label, key=p.key, end_key=p.end_key) for p in buckets.periods],
        truncated=buckets.truncated,
    )


@router.get("/explorer", response_model=ExplorerResponse)
def get_explorer(
    *,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    settings: Settings = Depends(get_settings),
    client_id: str = Query(..., description="Client whose insights are shown"),
    date_start: date = Query(...),
    date_end: date = Query(...),
    level: str = Query("campaigns", description="campaigns|adsets|ads"),
    campaign_ids: Optional[List[str]] = Query(None, description="Parent campaign filter (repeatable)"),
    adset_ids: Optional[List[str]] = Query(None, description="Parent ad set filter (repeatable)"),
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    granularity: Optional[str] = Query(None, description="day|week|month for the period pivot"),
    config_entity_id: Optional[str] = Query(None, description="Entity whose metric config picks the columns"),
):
    """
    WHAT: Aggregated entities for one drill level plus totals, charts and pivot.

    WHY: A backend fetch failure still returns 200 with empty rows and `error`
    set, so the UI shows its "no data" state.
    """

    try:
        query = build_query(
            organization_id=organization_id,
            client_id=client_id,
            date_start=date_start,
            date_end=date_end,
            level=level,
            campaign_ids=campaign_ids,
            adset_ids=adset_ids,
        )
        service = CampaignExplorerService(
            db,
            currency_symbol=settings.CURRENCY_SYMBOL,
            max_periods=settings.PERIOD_MAX_BUCKETS,
        )
        view = service.build_view(
            query,
            search=search,
            granularity=granularity or settings.DEFAULT_GRANULARITY,
            config_entity_id=config_entity_id,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc

    rows = []
    for card in view.cards:
        item = card.insight
        rows.append(
            ExplorerEntityRow(
                id=item.id,
                name=item.name,
                objective=item.objective,
                status=item.status,
                campaign_id=item.campaign_id,
                campaign_name=item.campaign_name,
                adset_id=item.adset_id,
                adset_name=item.adset_name,
                metrics=[_reading_out(r) for r in card.metrics],
                **item.as_measures(),
            )
        )

    return ExplorerResponse(
        meta=ExplorerMeta(
            title=level_config(view.level).label,
            level=view.level,
            date_start=date_start,
            date_end=date_end,
            total=view.total_count,
            visible=len(view.cards),
        ),
        columns=[definition_out(d) for d in view.columns],
        rows=rows,
        totals=ExplorerTotals(
            metrics=[_reading_out(r) for r in view.totals_metrics],
            **view.totals.as_measures(),
        ),
        daily_series=[
            DailyPointOut(
                date=point.date,
                label=point.label,
                impressions=point.impressions,
                clicks=point.clicks,
                spend=point.spend,
                leads=point.leads,
                conversions=point.conversions,
                revenue=point.revenue,
            )
            for point in view.daily_series
        ],
        spend_share=[
            SpendSliceOut(name=s.name, value=s.value, entity_id=s.entity_id, entity_ids=s.entity_ids)
            for s in view.spend_share
        ],
        periods=_periods_out(view.periods),
        pivot=[
            EntityPeriodsOut(entity_id=p.entity_id, name=p.name, cells=[_cell_out(c) for c in p.cells])
            for p in view.pivot
        ],
        period_totals=[_cell_out(c) for c in view.period_totals],
        error=view.error,
    )


@router.get("/periods", response_model=PeriodsResponse)
def get_periods(
    *,
    settings: Settings = Depends(get_settings),
    date_start: date = Query(...),
    date_end: date = Query(...),
    granularity: Optional[str] = Query(None, description="day|week|month"),
):
    """Period buckets for a range; `truncated` is set when the cap was hit."""

    try:
        buckets = build_periods(
            date_start,
            date_end,
            granularity or settings.DEFAULT_GRANULARITY,
            settings.PERIOD_MAX_BUCKETS,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _periods_out(buckets)


@router.post("/navigation", response_model=NavigationResponse)
def navigate(payload: NavigationRequest):
    """Apply one navigator transition and return the resulting state and scope."""

    try:
        navigator = DrillDownNavigator.from_state(payload.state.model_dump(mode="json"))
        changed = True

        if payload.action == "drill_down":
            if not payload.entity_id:
                raise ValueError("drill_down requires entity_id")
            changed = navigator.drill_down(payload.entity_id, payload.entity_name)
        elif payload.action == "switch_tab":
            if payload.level is None:
                raise ValueError("switch_tab requires level")
            navigator.switch_tab(resolve_level(payload.level))
        elif payload.action == "clear_filters":
            navigator.clear_filters()
        elif payload.action == "navigate_to":
            if payload.index is None:
                raise ValueError("navigate_to requires index")
            navigator.navigate_to(payload.index)
        elif payload.action == "toggle_checked":
            if not payload.entity_id:
                raise ValueError("toggle_checked requires entity_id")
            navigator.toggle_checked(payload.entity_id)
        else:
            navigator.select_all_visible(payload.visible_ids)
    except ValueError as exc:
        raise _bad_request(exc) from exc

    state = navigator.to_state()
    scope = navigator.parent_scope()
    return NavigationResponse(
        state=NavigatorState(
            level=state["level"],
            selected_campaign_ids=state["selected_campaign_ids"],
            selected_adset_ids=state["selected_adset_ids"],
            selected_ad_ids=state["selected_ad_ids"],
            checked_ids=state["checked_ids"],
            search_query=state["search_query"],
            breadcrumbs=[BreadcrumbOut(**crumb) for crumb in state["breadcrumbs"]],
        ),
        parent_scope=ParentScopeOut(column=scope.column, ids=list(scope.ids)),
        filter_summary=navigator.filter_summary(),
        changed=changed,
    )
