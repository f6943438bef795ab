"""
Campaign Explorer Service
=========================

**Version**: 1.0.0

Composes the fetch, aggregation, metric configuration and period bucketing
steps into the single payload the explorer screen renders.

WHAT:
    build_view(query, search, granularity) →
        1. fetch rows for the level and parent scope (degrades to empty)
        2. aggregate per entity (sorted by spend)
        3. totals row, daily series and spend share over ALL entities
        4. search filter for the visible cards
        5. metric configuration for the level in ONE query; each card gets
           its own resolved metric list, the view gets its column list
        6. period buckets + per-entity pivot for the visible entities

WHY derived metrics are computed here, per card:
    Every card, the totals row and each pivot cell recompute CTR/CPL/...
    from their own summed bases via the catalog. Nothing derived is ever
    summed.

REFERENCES:
    - adsight/services/insight_query_service.py
    - adsight/services/insight_aggregator.py
    - adsight/services/metric_config_service.py
    - adsight/services/period_bucketer.py
    - adsight/routers/campaign_insights.py (GET /explorer)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Union

from sqlalchemy.orm import Session

from adsight import models
from adsight.hierarchy import level_config
from adsight.metrics.formatters import format_metric_value
from adsight.metrics.registry import (
    DEFAULT_CATALOG,
    DEFAULT_VISIBLE_METRICS,
    MetricCatalog,
    MetricDefinition,
)
from adsight.services.insight_aggregator import (
    AggregatedInsight,
    DailyPoint,
    MeasureTotals,
    SpendSlice,
    aggregate,
    build_daily_series,
    build_spend_share,
    compute_totals,
    filter_by_name,
)
from adsight.services.insight_query_service import InsightQuery, InsightQueryService
from adsight.services.metric_config_service import MetricConfigService
from adsight.services.period_bucketer import (
    DEFAULT_MAX_PERIODS,
    Granularity,
    PeriodBuckets,
    PeriodTotals,
    bucket_rows,
    build_periods,
    period_totals,
)

logger = logging.getLogger(__name__)


@dataclass
class MetricReading:
    key: str
    label: str
    short_label: str
    type: str
    value: float
    formatted: str


@dataclass
class EntityCard:
    insight: AggregatedInsight
    metrics: List[MetricReading] = field(default_factory=list)


@dataclass
class EntityPeriods:
    entity_id: str
    name: str
    cells: List[PeriodTotals] = field(default_factory=list)


@dataclass
class ExplorerView:
    level: models.DrillLevel
    cards: List[EntityCard]
    total_count: int
    totals: MeasureTotals
    totals_metrics: List[MetricReading]
    columns: List[MetricDefinition]
    daily_series: List[DailyPoint]
    spend_share: List[SpendSlice]
    periods: PeriodBuckets
    pivot: List[EntityPeriods]
    period_totals: List[PeriodTotals]
    error: Optional[str] = None


def read_metrics(
    measures: Mapping[str, float],
    definitions: Sequence[MetricDefinition],
    currency_symbol: str = "R$",
) -> List[MetricReading]:
    """Value + display string for each definition, computed from bases."""
    readings = []
    for definition in definitions:
        value = definition.value_for(measures)
        readings.append(
            MetricReading(
                key=definition.key,
                label=definition.label,
                short_label=definition.short_label,
                type=definition.type.value,
                value=value,
                formatted=format_metric_value(definition, value, currency_symbol),
            )
        )
    return readings


class CampaignExplorerService:
    """
    Builds explorer views for one database session.

    Usage:
        service = CampaignExplorerService(db)
        view = service.build_view(query, search="sale", granularity="week")
    """

    def __init__(
        self,
        db: Session,
        catalog: MetricCatalog = DEFAULT_CATALOG,
        default_metrics: Sequence[str] = DEFAULT_VISIBLE_METRICS,
        currency_symbol: str = "R$",
        max_periods: int = DEFAULT_MAX_PERIODS,
    ):
        self.db = db
        self.catalog = catalog
        self.currency_symbol = currency_symbol
        self.max_periods = max_periods
        self.queries = InsightQueryService(db)
        self.configs = MetricConfigService(db, catalog=catalog, default_metrics=default_metrics)

    def build_view(
        self,
        query: InsightQuery,
        search: Optional[str] = None,
        granularity: Union[str, Granularity] = Granularity.day,
        config_entity_id: Optional[str] = None,
    ) -> ExplorerView:
        """
        Build the full explorer payload for a level.

        Args:
            query: Scope, date range, level and parent filters
            search: Case-insensitive name filter for the visible cards
            granularity: Pivot bucket size (day/week/month)
            config_entity_id: Entity whose configuration picks the view
                columns (None → level default)

        Raises:
            ValueError: unknown granularity
        """
        buckets = build_periods(query.date_start, query.date_end, granularity, self.max_periods)

        fetched = self.queries.fetch_rows(query)
        rows = fetched.rows

        aggregated = aggregate(rows, query.level)
        totals = compute_totals(aggregated)
        visible = filter_by_name(aggregated, search)

        entity_type = level_config(query.level).entity_type
        config = self.configs.get_config(query.organization_id, query.client_id, entity_type)
        columns = config.resolve_metrics(config_entity_id)

        cards = [
            EntityCard(
                insight=item,
                metrics=read_metrics(item.as_measures(), config.resolve_metrics(item.id), self.currency_symbol),
            )
            for item in visible
        ]

        per_entity: Dict[str, List[PeriodTotals]] = bucket_rows(rows, buckets, query.level)
        pivot = [
            EntityPeriods(
                entity_id=item.id,
                name=item.name,
                cells=per_entity.get(item.id) or [PeriodTotals() for _ in buckets.periods],
            )
            for item in visible
        ]

        logger.info(
            f"[EXPLORER] {query.level.value}: {len(rows)} rows → {len(aggregated)} entities "
            f"({len(visible)} visible), {len(buckets)} {buckets.granularity.value} periods"
            + (" [truncated]" if buckets.truncated else "")
        )

        return ExplorerView(
            level=query.level,
            cards=cards,
            total_count=len(aggregated),
            totals=totals,
            totals_metrics=read_metrics(totals.as_measures(), columns, self.currency_symbol),
            columns=columns,
            daily_series=build_daily_series(rows),
            spend_share=build_spend_share(aggregated),
            periods=buckets,
            pivot=pivot,
            period_totals=period_totals(rows, buckets),
            error=fetched.error,
        )
