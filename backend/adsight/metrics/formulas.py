"""
Metric Formulas
===============

Pure calculation functions for derived metrics.

Every function takes summed base measures and returns a float. A zero
denominator yields 0.0 so cards and pivot cells always render a number.

Rates (ctr, conversion_rate) are returned as fractions: 0.0667 means 6.67%.

Related:
- adsight/metrics/registry.py: wires these into MetricDefinition.compute
"""

from typing import Optional


def safe_divide(numerator: Optional[float], denominator: Optional[float]) -> float:
    """Divide, returning 0.0 when the denominator is missing or not positive."""
    if not denominator or denominator <= 0:
        return 0.0
    return (numerator or 0.0) / denominator


def cpl(spend: float, leads: float) -> float:
    """Cost per lead."""
    return safe_divide(spend, leads)


def cpc(spend: float, clicks: float) -> float:
    """Cost per click."""
    return safe_divide(spend, clicks)


def ctr(clicks: float, impressions: float) -> float:
    """Click-through rate as a fraction."""
    return safe_divide(clicks, impressions)


def conversion_rate(conversions: float, leads: float) -> float:
    """Lead to conversion rate as a fraction."""
    return safe_divide(conversions, leads)


def cpm(spend: float, impressions: float) -> float:
    """Cost per thousand impressions."""
    return safe_divide(spend, impressions) * 1000


def roas(revenue: float, spend: float) -> float:
    """Return on ad spend (revenue / spend)."""
    return safe_divide(revenue, spend)


def frequency(impressions: float, reach: float) -> float:
    """Average impressions per reached person."""
    return safe_divide(impressions, reach)
