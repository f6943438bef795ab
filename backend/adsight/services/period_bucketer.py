"""
Period Bucketer
===============

Turns a date range + granularity into ordered, labelled buckets and
re-aggregates raw insight rows into those buckets for the pivot table.

WHAT:
    - `build_periods(start, end, granularity)`:
        day   → one bucket per calendar day, key == end_key, label "DD/MM"
        week  → 7-day buckets starting at `start`; the last one is clamped
                to `end`; label "D/M - D/M" of the clamped range
        month → one bucket per calendar month touched; key is the 1st of the
                month, end_key the last day; label "Jan 24"
    - `assign_to_period(row, periods, granularity)`: day = exact date,
      week = inclusive [key, end_key], month = same year and month.
    - `bucket_rows` / `period_totals`: sum impressions, clicks, spend, leads,
      conversions and revenue per (entity, period). Frequency is not tracked
      per period.

Bucket cap:
    The loop stops after `max_periods` buckets (default 100, configurable
    through settings). Hitting the cap sets `PeriodBuckets.truncated` and
    logs a warning instead of silently dropping the tail of the range.

REFERENCES:
    - adsight/services/insight_aggregator.py (row coercion, SERIES_FIELDS)
    - adsight/routers/campaign_insights.py (/periods endpoint)
"""

from __future__ import annotations

import calendar
import enum
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Union

from adsight import models
from adsight.hierarchy import level_config
from adsight.services.insight_aggregator import SERIES_FIELDS, RowLike, coerce_row, to_date

logger = logging.getLogger(__name__)


DEFAULT_MAX_PERIODS = 100

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class Granularity(str, enum.Enum):
    day = "day"
    week = "week"
    month = "month"


def resolve_granularity(granularity: Union[str, Granularity]) -> Granularity:
    try:
        return Granularity(granularity)
    except ValueError as exc:
        raise ValueError(
            f"Unsupported granularity '{granularity}'. Expected day/week/month"
        ) from exc


@dataclass(frozen=True)
class Period:
    label: str
    key: date
    end_key: date


@dataclass
class PeriodBuckets:
    """Ordered periods for a range, plus whether the cap cut the range short."""

    granularity: Granularity
    periods: List[Period] = field(default_factory=list)
    truncated: bool = False

    def __iter__(self) -> Iterator[Period]:
        return iter(self.periods)

    def __len__(self) -> int:
        return len(self.periods)

    def __getitem__(self, index: int) -> Period:
        return self.periods[index]


@dataclass
class PeriodTotals:
    """Summed series fields for one period."""

    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    leads: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0

    def add(self, row) -> None:
        for name in SERIES_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(row, name))

    def as_measures(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in SERIES_FIELDS}


def _last_day_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def build_periods(
    start: date,
    end: date,
    granularity: Union[str, Granularity] = Granularity.day,
    max_periods: int = DEFAULT_MAX_PERIODS,
) -> PeriodBuckets:
    """
    Build ordered buckets covering [start, end].

    Raises:
        ValueError: start after end, unknown granularity or a non-positive cap
    """
    granularity = resolve_granularity(granularity)
    if start > end:
        raise ValueError(f"date_start {start} is after date_end {end}")
    if max_periods <= 0:
        raise ValueError(f"max_periods must be positive, got {max_periods}")

    buckets = PeriodBuckets(granularity=granularity)
    current = start

    while current <= end and len(buckets.periods) < max_periods:
        if granularity == Granularity.day:
            period = Period(label=current.strftime("%d/%m"), key=current, end_key=current)
            next_start = current + timedelta(days=1)
        elif granularity == Granularity.week:
            week_end = min(current + timedelta(days=6), end)
            label = f"{current.day}/{current.month} - {week_end.day}/{week_end.month}"
            period = Period(label=label, key=current, end_key=week_end)
            next_start = current + timedelta(days=7)
        else:
            first = current.replace(day=1)
            label = f"{MONTH_ABBR[first.month - 1]} {first:%y}"
            period = Period(label=label, key=first, end_key=_last_day_of_month(first))
            next_start = _first_of_next_month(first)

        buckets.periods.append(period)
        current = next_start

    if current <= end:
        buckets.truncated = True
        logger.warning(
            f"[PERIODS] Range {start}..{end} by {granularity.value} exceeds "
            f"{max_periods} buckets; truncated at {buckets.periods[-1].end_key}"
        )

    return buckets


def _row_date(row: Union[RowLike, date, str]) -> Optional[date]:
    if isinstance(row, (date, str)):
        return to_date(row)
    return coerce_row(row).date


def assign_to_period(
    row: Union[RowLike, date, str],
    periods: Iterable[Period],
    granularity: Union[str, Granularity],
) -> Optional[Period]:
    """Bucket a row (or bare date) falls into, None when outside every bucket."""
    granularity = resolve_granularity(granularity)
    row_date = _row_date(row)
    if row_date is None:
        return None

    for period in periods:
        if granularity == Granularity.day:
            if row_date == period.key:
                return period
        elif granularity == Granularity.month:
            if (row_date.year, row_date.month) == (period.key.year, period.key.month):
                return period
        elif period.key <= row_date <= period.end_key:
            return period
    return None


def bucket_rows(
    rows: Iterable[RowLike],
    buckets: PeriodBuckets,
    level: Union[str, models.DrillLevel],
) -> Dict[str, List[PeriodTotals]]:
    """
    Per-entity period totals, aligned with `buckets.periods`.

    Rows outside every bucket (including the truncated tail) are ignored.
    """
    config = level_config(level)
    index = {period.key: position for position, period in enumerate(buckets.periods)}
    pivot: Dict[str, List[PeriodTotals]] = {}

    for raw in rows:
        row = coerce_row(raw)
        entity_id = getattr(row, config.group_key)
        if not entity_id:
            continue
        period = assign_to_period(row, buckets.periods, buckets.granularity)
        if period is None:
            continue
        cells = pivot.get(entity_id)
        if cells is None:
            cells = [PeriodTotals() for _ in buckets.periods]
            pivot[entity_id] = cells
        cells[index[period.key]].add(row)

    return pivot


def period_totals(rows: Iterable[RowLike], buckets: PeriodBuckets) -> List[PeriodTotals]:
    """All-entity totals per period (the pivot's footer row)."""
    index = {period.key: position for position, period in enumerate(buckets.periods)}
    totals = [PeriodTotals() for _ in buckets.periods]
    for raw in rows:
        row = coerce_row(raw)
        period = assign_to_period(row, buckets.periods, buckets.granularity)
        if period is not None:
            totals[index[period.key]].add(row)
    return totals
