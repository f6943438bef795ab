"""
Tests for explorer view composition.

WHAT:
    Validate adsight/services/campaign_explorer_service.py end to end against
    SQLite: ordering, totals over every entity, search on the visible cards,
    per-entity metric configuration and the period pivot.

WHY:
    The view mixes all-entity numbers (totals, spend share) with
    searched-only numbers (cards, pivot); mixing them up is easy.

REFERENCES:
    - adsight/services/campaign_explorer_service.py
    - adsight/services/metric_config_service.py
"""

from datetime import date

import pytest

from adsight.metrics.registry import DEFAULT_CATALOG, DEFAULT_VISIBLE_METRICS
from adsight.services.campaign_explorer_service import CampaignExplorerService, read_metrics
from adsight.services.insight_query_service import InsightFetchResult, build_query
from adsight.services.metric_config_service import MetricConfigService

from conftest import CLIENT_ID, ORG_ID


def _query(level="campaigns", **kwargs):
    return build_query(ORG_ID, CLIENT_ID, date(2024, 1, 1), date(2024, 1, 2), level, **kwargs)


def _metric(card, key):
    return next(m for m in card.metrics if m.key == key)


def test_cards_sorted_by_spend_with_recomputed_ctr(test_db_session, sample_insights):
    view = CampaignExplorerService(test_db_session).build_view(_query())

    assert [card.insight.id for card in view.cards] == ["B", "A"]
    card_a = view.cards[1]
    assert card_a.insight.spend == pytest.approx(20.0)
    assert card_a.insight.impressions == 300
    assert _metric(card_a, "ctr").value == pytest.approx(20 / 300)
    assert _metric(card_a, "ctr").formatted == "6.67%"
    assert _metric(card_a, "spend").formatted == "R$20.00"
    assert view.error is None


def test_totals_and_columns(test_db_session, sample_insights):
    view = CampaignExplorerService(test_db_session).build_view(_query())

    assert view.total_count == 2
    assert view.totals.spend == pytest.approx(50.0)
    assert view.totals.impressions == 1300
    assert view.totals.frequency == pytest.approx(1300 / 650)
    assert [c.key for c in view.columns] == list(DEFAULT_VISIBLE_METRICS)
    assert [m.key for m in view.totals_metrics] == list(DEFAULT_VISIBLE_METRICS)


def test_search_filters_cards_but_not_totals(test_db_session, sample_insights):
    view = CampaignExplorerService(test_db_session).build_view(_query(), search="SPRING")

    assert [card.insight.id for card in view.cards] == ["A"]
    assert [row.entity_id for row in view.pivot] == ["A"]
    assert view.total_count == 2
    assert view.totals.spend == pytest.approx(50.0)
    assert len(view.spend_share) == 2


def test_each_card_uses_its_own_metric_config(test_db_session, sample_insights):
    configs = MetricConfigService(test_db_session)
    configs.save_config(ORG_ID, CLIENT_ID, "campaign", "A", ["spend", "ctr"])
    configs.save_config(ORG_ID, CLIENT_ID, "campaign", None, ["roas"])

    view = CampaignExplorerService(test_db_session).build_view(_query())

    by_id = {card.insight.id: [m.key for m in card.metrics] for card in view.cards}
    assert by_id == {"A": ["spend", "ctr"], "B": ["roas"]}
    assert [c.key for c in view.columns] == ["roas"]


def test_config_entity_id_picks_view_columns(test_db_session, sample_insights):
    MetricConfigService(test_db_session).save_config(ORG_ID, CLIENT_ID, "adset", "A", ["cpc"])

    view = CampaignExplorerService(test_db_session).build_view(
        _query("adsets", campaign_ids=["A"]),
        config_entity_id="A",
    )

    assert [c.key for c in view.columns] == ["cpc"]
    assert sorted(card.insight.id for card in view.cards) == ["AS1", "AS2"]


def test_daily_pivot_and_period_totals(test_db_session, sample_insights):
    view = CampaignExplorerService(test_db_session).build_view(_query(), granularity="day")

    assert [p.label for p in view.periods] == ["01/01", "02/01"]
    pivot = {row.entity_id: [cell.spend for cell in row.cells] for row in view.pivot}
    assert pivot["A"] == [pytest.approx(10.5), pytest.approx(9.5)]
    assert pivot["B"] == [pytest.approx(30.0), 0]
    assert [t.spend for t in view.period_totals] == [pytest.approx(40.5), pytest.approx(9.5)]
    assert [p.label for p in view.daily_series] == ["01/01", "02/01"]


def test_truncated_flag_is_carried(test_db_session, sample_insights):
    view = CampaignExplorerService(test_db_session, max_periods=1).build_view(_query(), granularity="day")

    assert len(view.periods) == 1
    assert view.periods.truncated is True


def test_fetch_failure_renders_empty_view(test_db_session, monkeypatch):
    service = CampaignExplorerService(test_db_session)
    monkeypatch.setattr(
        service.queries,
        "fetch_rows",
        lambda query: InsightFetchResult(rows=[], error="Failed to load campaign insights"),
    )

    view = service.build_view(_query())

    assert view.cards == []
    assert view.total_count == 0
    assert view.totals.spend == 0
    assert view.error == "Failed to load campaign insights"


def test_unknown_granularity_raises(test_db_session):
    with pytest.raises(ValueError):
        CampaignExplorerService(test_db_session).build_view(_query(), granularity="hour")


def test_read_metrics_uses_currency_symbol():
    readings = read_metrics({"spend": 12.5, "leads": 5}, DEFAULT_CATALOG.resolve(["spend", "cpl"]), "$")

    assert [(r.key, r.formatted) for r in readings] == [("spend", "$12.50"), ("cpl", "$2.50")]
