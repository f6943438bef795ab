"""
Insight Aggregator
==================

**Version**: 1.0.0

Groups raw per-day insight rows into one summary per entity for a drill
level, plus the derived views the explorer renders from the same rows.

WHAT:
    - Ingestion boundary: `InsightRow.from_record` / `from_meta_record` /
      `from_model` turn dicts, raw Meta API records and ORM rows into one
      typed shape. Text numerics ("10.50") are parsed here; anything
      unparsable becomes zero.
    - `aggregate(rows, level)`: sum the additive counters per entity and take
      the simple mean of `frequency` over the entity's rows. Sorted by spend,
      highest first.
    - `compute_totals`: one totals row over the aggregated entities.
    - `build_daily_series`: per-day sums for the trend chart.
    - `build_spend_share`: top-N spend slices plus an "Others" slice.
    - `filter_by_name`: case-insensitive name search.

WHY frequency is a simple mean:
    Per-entity frequency is averaged over the contributing days without
    weighting by impressions. This is the accepted behaviour of the
    dashboard; tests pin it so any change is intentional. The totals row is
    the exception and uses impressions / reach.

WHY no derived metrics here:
    CTR, CPL, ... are never summed. Consumers compute them from the summed
    bases via `AggregatedInsight.as_measures()` and the metric catalog.

REFERENCES:
    - adsight/hierarchy.py (group and name keys per level)
    - adsight/metrics/registry.py (derived metrics over as_measures())
    - adsight/services/insight_query_service.py (produces InsightRows)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from adsight import models
from adsight.hierarchy import LEVEL_CONFIG, level_config
from adsight.metrics import formulas

logger = logging.getLogger(__name__)


ADDITIVE_FIELDS = (
    "impressions",
    "reach",
    "clicks",
    "link_clicks",
    "spend",
    "leads",
    "conversions",
    "revenue",
)

# Fields tracked by the trend chart and the period pivot
SERIES_FIELDS = ("impressions", "clicks", "spend", "leads", "conversions", "revenue")

LEAD_ACTION_TYPES = ("lead",)
PURCHASE_ACTION_TYPES = ("purchase", "offsite_conversion.fb_pixel_purchase")


# =====================================================================
# Coercion helpers
# =====================================================================

def to_float(value: Any) -> float:
    """Parse a numeric that may arrive as text. Unparsable or NaN → 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        result = float(value)
    else:
        try:
            result = float(str(value).strip())
        except (TypeError, ValueError):
            logger.debug(f"[INSIGHTS] Coercing unparsable numeric {value!r} to 0")
            return 0.0
    if math.isnan(result):
        return 0.0
    return result


def to_int(value: Any) -> int:
    number = to_float(value)
    if math.isinf(number):
        return 0
    return int(number)


def to_date(value: Any) -> Optional[date]:
    """Accept date, datetime or an ISO string (time part ignored)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.debug(f"[INSIGHTS] Ignoring unparsable date {value!r}")
        return None


def _action_value(actions: Any, action_types: Sequence[str]) -> float:
    """First matching Meta action value, 0 when absent."""
    if not isinstance(actions, list):
        return 0.0
    for action in actions:
        if isinstance(action, Mapping) and action.get("action_type") in action_types:
            return to_float(action.get("value"))
    return 0.0


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


# =====================================================================
# Row shapes
# =====================================================================

@dataclass
class InsightRow:
    """One entity on one day, with typed numerics."""

    date: Optional[date] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    ad_id: Optional[str] = None
    ad_name: Optional[str] = None
    status: Optional[str] = None
    objective: Optional[str] = None
    impressions: int = 0
    reach: int = 0
    clicks: int = 0
    link_clicks: int = 0
    spend: float = 0.0
    leads: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    frequency: float = 0.0

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "InsightRow":
        """Build from a flat dict. Missing numerics are zero."""
        return cls(
            date=to_date(record.get("date")),
            campaign_id=_optional_str(record.get("campaign_id")),
            campaign_name=_optional_str(record.get("campaign_name")),
            adset_id=_optional_str(record.get("adset_id")),
            adset_name=_optional_str(record.get("adset_name")),
            ad_id=_optional_str(record.get("ad_id")),
            ad_name=_optional_str(record.get("ad_name")),
            status=_optional_str(record.get("status")),
            objective=_optional_str(record.get("objective")),
            impressions=to_int(record.get("impressions")),
            reach=to_int(record.get("reach")),
            clicks=to_int(record.get("clicks")),
            link_clicks=to_int(record.get("link_clicks")),
            spend=to_float(record.get("spend")),
            leads=to_float(record.get("leads")),
            conversions=to_float(record.get("conversions")),
            revenue=to_float(record.get("revenue")),
            frequency=to_float(record.get("frequency")),
        )

    @classmethod
    def from_meta_record(
        cls,
        record: Mapping[str, Any],
        level: Union[str, models.DrillLevel],
    ) -> "InsightRow":
        """Build from a raw Meta insights record.

        Leads, conversions and revenue come from the `actions` /
        `action_values` arrays, frequency is recomputed as impressions / reach,
        missing names get placeholders and `status` is the status of the
        entity at `level`.
        """
        config = level_config(level)
        row = cls.from_record(record)

        actions = record.get("actions")
        action_values = record.get("action_values")
        row.leads = _action_value(actions, LEAD_ACTION_TYPES)
        row.conversions = _action_value(actions, PURCHASE_ACTION_TYPES)
        row.revenue = _action_value(action_values, PURCHASE_ACTION_TYPES)

        if row.impressions > 0 and row.reach > 0:
            row.frequency = formulas.frequency(row.impressions, row.reach)
        else:
            row.frequency = 0.0

        for cfg in LEVEL_CONFIG.values():
            if not getattr(row, cfg.name_key):
                setattr(row, cfg.name_key, cfg.placeholder_name)

        status_key = {
            models.DrillLevel.campaigns: "campaign_status",
            models.DrillLevel.adsets: "adset_status",
            models.DrillLevel.ads: "ad_status",
        }[config.level]
        row.status = _optional_str(record.get(status_key)) or row.status
        return row

    @classmethod
    def from_model(cls, obj: Any) -> "InsightRow":
        """Build from an ORM insight row (any of the three tables)."""
        record = {f.name: getattr(obj, f.name, None) for f in fields(cls)}
        return cls.from_record(record)

    def entity_id(self, level: Union[str, models.DrillLevel]) -> Optional[str]:
        return getattr(self, level_config(level).group_key)

    def entity_name(self, level: Union[str, models.DrillLevel]) -> Optional[str]:
        return getattr(self, level_config(level).name_key)


RowLike = Union[InsightRow, Mapping[str, Any]]


def coerce_row(row: RowLike) -> InsightRow:
    if isinstance(row, InsightRow):
        return row
    return InsightRow.from_record(row)


@dataclass
class MeasureTotals:
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

    def add(self, row: Union[InsightRow, "MeasureTotals"]) -> None:
        for name in ADDITIVE_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(row, name))

    def as_measures(self) -> Dict[str, float]:
        """Base measures keyed by metric key, for compute_metric()."""
        measures = {name: float(getattr(self, name)) for name in ADDITIVE_FIELDS}
        measures["frequency"] = float(self.frequency)
        return measures


@dataclass
class AggregatedInsight(MeasureTotals):
    """One entity summarised over a date range."""

    id: str = ""
    name: str = ""
    objective: Optional[str] = None
    status: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    row_count: int = 0


@dataclass
class DailyPoint:
    date: date
    label: str
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    leads: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0


@dataclass
class SpendSlice:
    name: str
    value: float
    entity_id: Optional[str] = None
    entity_ids: List[str] = field(default_factory=list)


# =====================================================================
# Aggregation
# =====================================================================

def aggregate(rows: Iterable[RowLike], level: Union[str, models.DrillLevel]) -> List[AggregatedInsight]:
    """
    Group rows by the level's entity id and summarise each group.

    Args:
        rows: InsightRows or flat dicts (text numerics allowed)
        level: "campaigns" | "adsets" | "ads"

    Returns:
        One AggregatedInsight per entity, sorted by spend descending.
        Empty input returns an empty list.

    Raises:
        ValueError: unknown level
    """
    config = level_config(level)
    groups: Dict[str, List[InsightRow]] = {}
    skipped = 0

    for raw in rows:
        row = coerce_row(raw)
        entity_id = getattr(row, config.group_key)
        if not entity_id:
            skipped += 1
            continue
        groups.setdefault(entity_id, []).append(row)

    if skipped:
        logger.debug(f"[INSIGHTS] Skipped {skipped} rows without {config.group_key}")

    result: List[AggregatedInsight] = []
    for entity_id, group in groups.items():
        first = group[0]
        summary = AggregatedInsight(
            id=entity_id,
            name=getattr(first, config.name_key) or entity_id,
            objective=first.objective,
            status=first.status,
            campaign_id=first.campaign_id,
            campaign_name=first.campaign_name,
            adset_id=first.adset_id,
            adset_name=first.adset_name,
            row_count=len(group),
        )
        for row in group:
            summary.add(row)
        summary.frequency = sum(row.frequency for row in group) / len(group)
        result.append(summary)

    result.sort(key=lambda item: item.spend, reverse=True)
    return result


def compute_totals(aggregated: Sequence[MeasureTotals]) -> MeasureTotals:
    """Totals row over aggregated entities; frequency = impressions / reach."""
    totals = MeasureTotals()
    for item in aggregated:
        totals.add(item)
    if aggregated:
        totals.frequency = formulas.frequency(totals.impressions, totals.reach)
    return totals


def build_daily_series(rows: Iterable[RowLike]) -> List[DailyPoint]:
    """Sum rows per calendar day, oldest first, labelled DD/MM."""
    by_date: Dict[date, DailyPoint] = {}
    for raw in rows:
        row = coerce_row(raw)
        if row.date is None:
            continue
        point = by_date.get(row.date)
        if point is None:
            point = DailyPoint(date=row.date, label=row.date.strftime("%d/%m"))
            by_date[row.date] = point
        for name in SERIES_FIELDS:
            setattr(point, name, getattr(point, name) + getattr(row, name))
    return [by_date[key] for key in sorted(by_date)]


def truncate_name(name: str, max_length: int = 20) -> str:
    if len(name) > max_length:
        return name[:max_length] + "…"
    return name


def build_spend_share(
    aggregated: Sequence[AggregatedInsight],
    limit: int = 5,
    others_label: str = "Others",
    max_name_length: int = 20,
) -> List[SpendSlice]:
    """Top `limit` entities by spend plus one slice summing the rest."""
    ranked = sorted(aggregated, key=lambda item: item.spend, reverse=True)
    top, rest = ranked[:limit], ranked[limit:]

    slices = [
        SpendSlice(
            name=truncate_name(item.name, max_name_length),
            value=item.spend,
            entity_id=item.id,
            entity_ids=[item.id],
        )
        for item in top
    ]
    if rest:
        slices.append(
            SpendSlice(
                name=others_label,
                value=sum(item.spend for item in rest),
                entity_ids=[item.id for item in rest],
            )
        )
    return slices


def filter_by_name(aggregated: Sequence[AggregatedInsight], query: Optional[str]) -> List[AggregatedInsight]:
    """Case-insensitive substring search on entity names. Blank → all."""
    if not query or not query.strip():
        return list(aggregated)
    needle = query.lower()
    return [item for item in aggregated if needle in item.name.lower()]
