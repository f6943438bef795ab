"""
Metric Registry
===============

Catalog of every metric the explorer can display.

WHAT:
    - MetricDefinition: key, labels, display type and (for derived metrics)
      the compute function plus the base measures it depends on.
    - MetricCatalog: immutable, ordered registry of definitions. Services
      receive a catalog instance instead of importing a global, so tests can
      inject a synthetic one.
    - AVAILABLE_METRICS / DEFAULT_VISIBLE_METRICS / DEFAULT_CATALOG.

WHY derived metrics are never summed:
    CTR of two periods is not the sum (nor the mean) of their CTRs. Derived
    values are always recomputed from summed base measures at whatever
    aggregation level is being displayed.

Usage:
    >>> compute_metric("ctr", {"clicks": 20, "impressions": 300})
    0.0666...

Related:
- adsight/metrics/formulas.py: pure calculation functions
- adsight/metrics/formatters.py: display formatting by MetricType
- adsight/services/metric_config_service.py: maps stored keys through the catalog
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from adsight.metrics import formulas


class MetricType(str, enum.Enum):
    number = "number"
    currency = "currency"
    percent = "percent"


Measures = Mapping[str, float]


@dataclass(frozen=True)
class MetricDefinition:
    key: str
    label: str
    short_label: str
    type: MetricType
    computed: bool = False
    compute: Optional[Callable[[Measures], float]] = field(default=None, compare=False, repr=False)
    requires: Tuple[str, ...] = ()
    color: Optional[str] = None

    def value_for(self, measures: Measures) -> float:
        """Displayed value for this metric given summed base measures."""
        if self.computed and self.compute is not None:
            return float(self.compute(measures))
        return float(measures.get(self.key, 0) or 0)


class MetricCatalog(Mapping):
    """Immutable, ordered mapping of metric key → MetricDefinition."""

    def __init__(self, definitions: Iterable[MetricDefinition]):
        entries: Dict[str, MetricDefinition] = {}
        for definition in definitions:
            if definition.key in entries:
                raise ValueError(f"Duplicate metric key '{definition.key}'")
            if definition.computed and definition.compute is None:
                raise ValueError(f"Computed metric '{definition.key}' has no compute function")
            entries[definition.key] = definition
        self._entries = entries

    def __getitem__(self, key: str) -> MetricDefinition:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MetricCatalog({list(self._entries)})"

    @property
    def definitions(self) -> List[MetricDefinition]:
        return list(self._entries.values())

    def base_metrics(self) -> List[MetricDefinition]:
        return [d for d in self._entries.values() if not d.computed]

    def computed_metrics(self) -> List[MetricDefinition]:
        return [d for d in self._entries.values() if d.computed]

    def resolve(self, keys: Sequence[str]) -> List[MetricDefinition]:
        """Map keys to definitions in the given order, dropping unknown keys."""
        return [self._entries[key] for key in keys if key in self._entries]


AVAILABLE_METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition("impressions", "Impressions", "Impr.", MetricType.number, color="text-blue-400"),
    MetricDefinition("reach", "Reach", "Reach", MetricType.number, color="text-sky-400"),
    MetricDefinition("clicks", "Clicks", "Clicks", MetricType.number, color="text-amber-400"),
    MetricDefinition("link_clicks", "Link Clicks", "Link", MetricType.number, color="text-orange-400"),
    MetricDefinition("spend", "Spend", "Spend", MetricType.currency, color="text-red-400"),
    MetricDefinition("leads", "Leads", "Leads", MetricType.number, color="text-indigo-400"),
    MetricDefinition("conversions", "Conversions", "Conv.", MetricType.number, color="text-emerald-400"),
    MetricDefinition("revenue", "Revenue", "Rev.", MetricType.currency, color="text-green-400"),
    MetricDefinition("frequency", "Frequency", "Freq.", MetricType.number, color="text-slate-400"),
    MetricDefinition(
        "cpl", "CPL", "CPL", MetricType.currency, computed=True,
        compute=lambda m: formulas.cpl(m.get("spend", 0), m.get("leads", 0)),
        requires=("spend", "leads"), color="text-cyan-400",
    ),
    MetricDefinition(
        "cpc", "CPC", "CPC", MetricType.currency, computed=True,
        compute=lambda m: formulas.cpc(m.get("spend", 0), m.get("clicks", 0)),
        requires=("spend", "clicks"), color="text-teal-400",
    ),
    MetricDefinition(
        "ctr", "CTR", "CTR", MetricType.percent, computed=True,
        compute=lambda m: formulas.ctr(m.get("clicks", 0), m.get("impressions", 0)),
        requires=("clicks", "impressions"), color="text-yellow-400",
    ),
    MetricDefinition(
        "conversion_rate", "Conversion Rate", "Conv. Rate", MetricType.percent, computed=True,
        compute=lambda m: formulas.conversion_rate(m.get("conversions", 0), m.get("leads", 0)),
        requires=("conversions", "leads"), color="text-emerald-400",
    ),
    MetricDefinition(
        "cpm", "CPM", "CPM", MetricType.currency, computed=True,
        compute=lambda m: formulas.cpm(m.get("spend", 0), m.get("impressions", 0)),
        requires=("spend", "impressions"), color="text-rose-400",
    ),
    MetricDefinition(
        "roas", "ROAS", "ROAS", MetricType.number, computed=True,
        compute=lambda m: formulas.roas(m.get("revenue", 0), m.get("spend", 0)),
        requires=("revenue", "spend"), color="text-lime-400",
    ),
)

DEFAULT_VISIBLE_METRICS: Tuple[str, ...] = (
    "impressions", "clicks", "spend", "leads", "conversions", "revenue", "cpl", "ctr",
)

DEFAULT_CATALOG = MetricCatalog(AVAILABLE_METRICS)


def is_base_measure(key: str, catalog: MetricCatalog = DEFAULT_CATALOG) -> bool:
    definition = catalog.get(key)
    return definition is not None and not definition.computed


def get_required_bases(key: str, catalog: MetricCatalog = DEFAULT_CATALOG) -> Tuple[str, ...]:
    """Base measures a metric is computed from (the metric itself for bases)."""
    definition = catalog[key]
    if not definition.computed:
        return (definition.key,)
    return definition.requires


def compute_metric(key: str, measures: Measures, catalog: MetricCatalog = DEFAULT_CATALOG) -> float:
    """Compute one metric from summed base measures.

    Raises:
        KeyError: if the key is not in the catalog
    """
    return catalog[key].value_for(measures)
