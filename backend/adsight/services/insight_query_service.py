"""
Insight Query Service
=====================

WHAT:
    Range query over the insight table of a drill level, scoped by
    (organization_id, client_id, date_start..date_end) and the navigator's
    parent scope, ordered by date. Returns typed InsightRows.

WHY an explicit result object:
    Backend failures never reach the aggregation code. They are logged,
    sent to Sentry, and returned as `InsightFetchResult(rows=[], error=...)`
    so the explorer renders its "no data" state instead of a 500.

REFERENCES:
    - adsight/hierarchy.py (level → ORM model)
    - adsight/services/drilldown.py::ParentScope
    - adsight/services/insight_aggregator.py::InsightRow.from_model
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adsight import models
from adsight.hierarchy import level_config, resolve_level
from adsight.services.drilldown import ParentScope
from adsight.services.insight_aggregator import InsightRow
from adsight.telemetry import capture_exception

logger = logging.getLogger(__name__)


@dataclass
class InsightQuery:
    organization_id: str
    client_id: str
    date_start: date
    date_end: date
    level: models.DrillLevel = models.DrillLevel.campaigns
    campaign_ids: Sequence[str] = ()
    adset_ids: Sequence[str] = ()

    def __post_init__(self):
        self.level = resolve_level(self.level)
        if self.date_start > self.date_end:
            raise ValueError(f"date_start {self.date_start} is after date_end {self.date_end}")

    @property
    def scope(self) -> ParentScope:
        return ParentScope.for_level(self.level, self.campaign_ids, self.adset_ids)


@dataclass
class InsightFetchResult:
    rows: List[InsightRow] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class InsightQueryService:
    """Reads insight rows for one level. Stateless apart from the session."""

    def __init__(self, db: Session):
        self.db = db

    def fetch_rows(self, query: InsightQuery) -> InsightFetchResult:
        config = level_config(query.level)
        model = config.model
        scope = query.scope

        q = (
            self.db.query(model)
            .filter(
                model.organization_id == query.organization_id,
                model.client_id == query.client_id,
                model.date >= query.date_start,
                model.date <= query.date_end,
            )
        )
        if not scope.is_empty:
            q = q.filter(getattr(model, scope.column).in_(scope.ids))

        try:
            records = q.order_by(model.date.asc()).all()
        except SQLAlchemyError as e:
            logger.error(
                f"[INSIGHTS] Fetch failed for {query.level.value} "
                f"org={query.organization_id} client={query.client_id} "
                f"{query.date_start}..{query.date_end}: {e}"
            )
            capture_exception(e, extra={
                "level": query.level.value,
                "organization_id": query.organization_id,
                "client_id": query.client_id,
                "date_start": str(query.date_start),
                "date_end": str(query.date_end),
            })
            return InsightFetchResult(rows=[], error="Failed to load campaign insights")

        rows = [InsightRow.from_model(record) for record in records]
        logger.debug(
            f"[INSIGHTS] Fetched {len(rows)} {query.level.value} rows "
            f"(scope={scope.column or 'none'}:{len(scope.ids)})"
        )
        return InsightFetchResult(rows=rows)


def build_query(
    organization_id: str,
    client_id: str,
    date_start: date,
    date_end: date,
    level: Union[str, models.DrillLevel],
    campaign_ids: Optional[Sequence[str]] = None,
    adset_ids: Optional[Sequence[str]] = None,
) -> InsightQuery:
    """Convenience constructor used by routers (None lists → empty)."""
    return InsightQuery(
        organization_id=organization_id,
        client_id=client_id,
        date_start=date_start,
        date_end=date_end,
        level=resolve_level(level),
        campaign_ids=tuple(campaign_ids or ()),
        adset_ids=tuple(adset_ids or ()),
    )
