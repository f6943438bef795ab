"""Pydantic schemas for request/response payloads."""

from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .models import DrillLevel, EntityTypeEnum


# ============================================================================
# METRIC CATALOG
# ============================================================================

class MetricDefinitionOut(BaseModel):
    """
    WHAT: One catalog entry as exposed to the UI.
    WHY: The UI renders labels/colors and picks formatting from `type` without
         hardcoding its own metric list.
    REFERENCES: adsight/metrics/registry.py::MetricDefinition
    """

    key: str
    label: str
    short_label: str
    type: Literal["number", "currency", "percent"]
    computed: bool = False
    requires: List[str] = Field(default_factory=list, description="Base measures a derived metric is computed from")
    color: Optional[str] = None


class MetricCatalogResponse(BaseModel):
    metrics: List[MetricDefinitionOut]
    default_visible_metrics: List[str] = Field(description="Fallback list when nothing is configured")


class MetricReadingOut(BaseModel):
    """Computed value of one metric for one entity (or the totals row)."""

    key: str
    label: str
    short_label: str
    type: Literal["number", "currency", "percent"]
    value: float
    formatted: str = Field(description="Display string, e.g. 'R$12.50' or '6.67%'")


# ============================================================================
# METRIC DISPLAY CONFIGURATION
# ============================================================================

class MetricConfigUpdate(BaseModel):
    """Payload for saving an entity's visible metrics (order is display order)."""

    entity_id: Optional[str] = Field(
        default=None,
        description="Entity id; omit to save the level-wide __default__ configuration",
    )
    visible_metrics: List[str] = Field(description="Ordered metric keys")

    model_config = {
        "json_schema_extra": {
            "example": {"entity_id": "camp_001", "visible_metrics": ["spend", "leads", "ctr"]}
        }
    }


class MetricConfigSaved(BaseModel):
    entity_type: EntityTypeEnum
    entity_id: str
    visible_metrics: List[str]


class MetricConfigResponse(BaseModel):
    """
    WHAT: Every stored configuration for one level, fetched in one query.
    WHY: The UI resolves per-entity metrics locally instead of one request
         per card.
    """

    entity_type: EntityTypeEnum
    configs: Dict[str, List[str]] = Field(description="entity_id → ordered metric keys (includes __default__ when saved)")
    default_metrics: List[str] = Field(description="Keys used when an entity has no configuration")


class VisibleMetricsResponse(BaseModel):
    entity_type: EntityTypeEnum
    entity_id: Optional[str] = None
    metrics: List[MetricDefinitionOut]


# ============================================================================
# EXPLORER
# ============================================================================

class InsightMeasures(BaseModel):
    """Summed base measures."""

    impressions: int = 0
    reach: int = 0
    clicks: int = 0
    link_clicks: int = 0
    spend: float = 0.0
    leads: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    frequency: float = 0.0


class ExplorerEntityRow(InsightMeasures):
    """
    WHAT: One aggregated entity (campaign / ad set / ad) for the range.
    WHY: Cards and the table read both raw measures and the entity's own
         resolved metric readings.
    """

    id: str
    name: str
    objective: Optional[str] = None
    status: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    metrics: List[MetricReadingOut] = Field(default_factory=list)


class ExplorerTotals(InsightMeasures):
    metrics: List[MetricReadingOut] = Field(default_factory=list)


class DailyPointOut(BaseModel):
    date: date
    label: str = Field(description="DD/MM")
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    leads: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0


class SpendSliceOut(BaseModel):
    name: str
    value: float
    entity_id: Optional[str] = Field(default=None, description="None for the 'Others' slice")
    entity_ids: List[str] = Field(default_factory=list)


class PeriodOut(BaseModel):
    label: str
    key: date
    end_key: date


class PeriodsResponse(BaseModel):
    granularity: Literal["day", "week", "month"]
    periods: List[PeriodOut]
    truncated: bool = Field(default=False, description="True when the bucket cap cut the range short")


class PeriodCellOut(BaseModel):
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    leads: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0


class EntityPeriodsOut(BaseModel):
    entity_id: str
    name: str
    cells: List[PeriodCellOut] = Field(description="Aligned with periods")


class ExplorerMeta(BaseModel):
    title: str
    level: DrillLevel
    date_start: date
    date_end: date
    total: int = Field(description="Entities before the search filter")
    visible: int = Field(description="Entities after the search filter")


class ExplorerResponse(BaseModel):
    """
    WHAT: Full explorer payload for one level and date range.
    WHY: One round trip renders cards, totals, charts and the period pivot.
    REFERENCES: adsight/services/campaign_explorer_service.py::ExplorerView
    """

    meta: ExplorerMeta
    columns: List[MetricDefinitionOut]
    rows: List[ExplorerEntityRow]
    totals: ExplorerTotals
    daily_series: List[DailyPointOut]
    spend_share: List[SpendSliceOut]
    periods: PeriodsResponse
    pivot: List[EntityPeriodsOut]
    period_totals: List[PeriodCellOut]
    error: Optional[str] = Field(default=None, description="Set when the backend fetch failed; rows are empty")


# ============================================================================
# NAVIGATION
# ============================================================================

class BreadcrumbOut(BaseModel):
    level: DrillLevel
    label: str
    entity_id: Optional[str] = None


class NavigatorState(BaseModel):
    level: DrillLevel = DrillLevel.campaigns
    selected_campaign_ids: List[str] = Field(default_factory=list)
    selected_adset_ids: List[str] = Field(default_factory=list)
    selected_ad_ids: List[str] = Field(default_factory=list)
    checked_ids: List[str] = Field(default_factory=list)
    search_query: str = ""
    breadcrumbs: List[BreadcrumbOut] = Field(default_factory=list)


class NavigationRequest(BaseModel):
    """Apply one navigator action to a state."""

    state: NavigatorState = Field(default_factory=NavigatorState)
    action: Literal[
        "drill_down",
        "switch_tab",
        "clear_filters",
        "navigate_to",
        "toggle_checked",
        "select_all_visible",
    ]
    entity_id: Optional[str] = Field(default=None, description="drill_down / toggle_checked target")
    entity_name: Optional[str] = Field(default=None, description="Breadcrumb label for drill_down")
    level: Optional[DrillLevel] = Field(default=None, description="switch_tab target")
    index: Optional[int] = Field(default=None, description="navigate_to breadcrumb index")
    visible_ids: List[str] = Field(default_factory=list, description="select_all_visible: ids after search")

    model_config = {
        "json_schema_extra": {
            "example": {"action": "drill_down", "entity_id": "camp_001", "entity_name": "Spring Sale"}
        }
    }


class ParentScopeOut(BaseModel):
    column: Optional[Literal["campaign_id", "adset_id"]] = None
    ids: List[str] = Field(default_factory=list)


class NavigationResponse(BaseModel):
    state: NavigatorState
    parent_scope: ParentScopeOut
    filter_summary: Optional[str] = Field(default=None, description="e.g. 'Filtering by 2 campaigns + 1 ad set'")
    changed: bool = True


# ============================================================================
# HEALTH
# ============================================================================

class HealthResponse(BaseModel):
    """Response for the health check endpoint."""

    status: str = Field(description="Service status", examples=["ok"])
