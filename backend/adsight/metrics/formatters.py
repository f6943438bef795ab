"""
Metric Formatters
=================

Single source of truth for display formatting of metric values.

WHY:
- Cards, the totals row and the period pivot must render a metric the same way
- Percent metrics are stored as fractions (0.0667) and must not be shown raw
- Keep formatting rules explicit & easy to extend

Formatting is routed by the metric's MetricType from the catalog, not by key,
so a synthetic catalog formats its own metrics correctly. The only key-based
exceptions are the explicit sets below.

Related:
- adsight/metrics/registry.py: MetricDefinition.type drives the routing
- adsight/services/campaign_explorer_service.py: formats every metric reading
"""

from typing import Optional

from adsight.metrics.registry import MetricDefinition, MetricType


# Ratio metrics: multipliers with × symbol (2.45×)
RATIOS_X = {
    "roas",
}

# Averages that are not whole counts even though they are "number" metrics
FRACTIONAL = {
    "frequency",
}


def fmt_currency(v: Optional[float], symbol: str = "R$") -> str:
    """
    Format numeric as currency with 2 decimals and thousands separators.

    Examples:
        >>> fmt_currency(1234.56)
        "R$1,234.56"

        >>> fmt_currency(0.4794, "$")
        "$0.48"

        >>> fmt_currency(None)
        "N/A"
    """
    if v is None:
        return "N/A"
    return f"{symbol}{v:,.2f}"


def fmt_ratio_x(v: Optional[float]) -> str:
    if v is None:
        return "N/A"
    return f"{v:.2f}×"


def fmt_percent(v: Optional[float]) -> str:
    """
    Format numeric fraction as percentage with 2 decimals.

    Examples:
        >>> fmt_percent(20 / 300)
        "6.67%"

        >>> fmt_percent(None)
        "N/A"
    """
    if v is None:
        return "N/A"
    return f"{(v * 100):.2f}%"


def fmt_count(v: Optional[float]) -> str:
    """Whole number with thousands separators ("12,345")."""
    if v is None:
        return "N/A"
    return f"{v:,.0f}"


def fmt_decimal(v: Optional[float]) -> str:
    if v is None:
        return "N/A"
    return f"{v:,.2f}"


def format_metric_value(
    definition: MetricDefinition,
    value: Optional[float],
    symbol: str = "R$",
) -> str:
    """
    Route a metric value to the formatter for its type.

    This is the MAIN entry point for all metric formatting.

    Args:
        definition: Catalog entry of the metric being displayed
        value: Numeric value to format (can be None)
        symbol: Currency symbol for currency metrics

    Examples:
        >>> format_metric_value(DEFAULT_CATALOG["cpl"], 12.5)
        "R$12.50"

        >>> format_metric_value(DEFAULT_CATALOG["ctr"], 0.0667)
        "6.67%"

        >>> format_metric_value(DEFAULT_CATALOG["clicks"], 1234)
        "1,234"
    """
    if definition.type == MetricType.currency:
        return fmt_currency(value, symbol)

    if definition.type == MetricType.percent:
        return fmt_percent(value)

    if definition.key in RATIOS_X:
        return fmt_ratio_x(value)

    if definition.key in FRACTIONAL:
        return fmt_decimal(value)

    return fmt_count(value)


def format_compact(value: Optional[float]) -> str:
    """
    Short axis/label form: 1.2K, 3.4M.

    Examples:
        >>> format_compact(1234)
        "1.2K"

        >>> format_compact(3_400_000)
        "3.4M"

        >>> format_compact(999)
        "999"
    """
    if value is None:
        return "N/A"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return f"{value:.0f}"
