"""
Metric Formatter Tests (Unit)

Percent metrics are stored as fractions; make sure they never render raw.
"""

import pytest

from adsight.metrics.formatters import (
    fmt_count,
    fmt_currency,
    fmt_percent,
    format_compact,
    format_metric_value,
)
from adsight.metrics.registry import DEFAULT_CATALOG, MetricDefinition, MetricType


def test_currency_uses_symbol_and_two_decimals() -> None:
    assert fmt_currency(1234.56) == "R$1,234.56"
    assert fmt_currency(0.4794, "$") == "$0.48"


def test_percent_multiplies_fraction() -> None:
    assert fmt_percent(20 / 300) == "6.67%"
    assert fmt_percent(0) == "0.00%"


def test_none_renders_as_not_available() -> None:
    assert fmt_currency(None) == "N/A"
    assert fmt_count(None) == "N/A"
    assert format_compact(None) == "N/A"
    assert format_metric_value(DEFAULT_CATALOG["ctr"], None) == "N/A"


@pytest.mark.parametrize(
    "key,value,expected",
    [
        ("cpl", 12.5, "R$12.50"),
        ("spend", 1500, "R$1,500.00"),
        ("ctr", 0.0667, "6.67%"),
        ("conversion_rate", 0.25, "25.00%"),
        ("clicks", 12345, "12,345"),
        ("roas", 2.5, "2.50×"),
        ("frequency", 1.234, "1.23"),
    ],
)
def test_format_metric_value_routes_by_type(key, value, expected) -> None:
    assert format_metric_value(DEFAULT_CATALOG[key], value) == expected


def test_format_metric_value_custom_symbol() -> None:
    assert format_metric_value(DEFAULT_CATALOG["cpc"], 0.5, symbol="€") == "€0.50"


def test_routing_follows_definition_type_not_key() -> None:
    definition = MetricDefinition("hook_rate", "Hook Rate", "Hook", MetricType.percent)

    assert format_metric_value(definition, 0.5) == "50.00%"


def test_format_compact() -> None:
    assert format_compact(1234) == "1.2K"
    assert format_compact(3_400_000) == "3.4M"
    assert format_compact(999) == "999"
