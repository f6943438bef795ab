"""
Tests for the insight range query.

WHAT:
    Validate tenant/date scoping, the parent-scope filter per drill level and
    the degrade-to-empty behaviour of adsight/services/insight_query_service.py.

REFERENCES:
    - adsight/services/insight_query_service.py
    - adsight/services/drilldown.py::ParentScope
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from adsight.services import insight_query_service
from adsight.services.insight_query_service import InsightQuery, InsightQueryService, build_query

from conftest import CLIENT_ID, ORG_ID

JAN_1 = date(2024, 1, 1)
JAN_31 = date(2024, 1, 31)


def _fetch(db, level, **kwargs):
    query = build_query(ORG_ID, CLIENT_ID, JAN_1, JAN_31, level, **kwargs)
    return InsightQueryService(db).fetch_rows(query)


def test_campaign_rows_are_scoped_by_tenant_and_range(test_db_session, sample_insights):
    result = _fetch(test_db_session, "campaigns")

    assert result.ok
    assert len(result.rows) == 3
    assert {r.campaign_id for r in result.rows} == {"A", "B"}
    assert sum(r.spend for r in result.rows) == pytest.approx(50.0)


def test_rows_are_ordered_by_date(test_db_session, sample_insights):
    rows = _fetch(test_db_session, "campaigns").rows

    assert [r.date for r in rows] == sorted(r.date for r in rows)
    assert rows[-1].date == date(2024, 1, 2)


def test_numeric_columns_come_back_as_floats(test_db_session, sample_insights):
    rows = _fetch(test_db_session, "campaigns").rows

    assert all(isinstance(r.spend, float) for r in rows)
    assert all(isinstance(r.impressions, int) for r in rows)


def test_adset_level_filters_by_selected_campaign(test_db_session, sample_insights):
    rows = _fetch(test_db_session, "adsets", campaign_ids=["A"]).rows

    assert sorted(r.adset_id for r in rows) == ["AS1", "AS2"]
    assert {r.campaign_id for r in rows} == {"A"}


def test_adset_level_without_selection_is_unscoped(test_db_session, sample_insights):
    rows = _fetch(test_db_session, "adsets").rows

    assert sorted(r.adset_id for r in rows) == ["AS1", "AS2", "AS3"]


def test_ad_level_prefers_adset_filter(test_db_session, sample_insights):
    rows = _fetch(test_db_session, "ads", campaign_ids=["B"], adset_ids=["AS1"]).rows

    assert [r.ad_id for r in rows] == ["AD1"]


def test_ad_level_falls_back_to_campaign_filter(test_db_session, sample_insights):
    rows = _fetch(test_db_session, "ads", campaign_ids=["B"]).rows

    assert [r.ad_id for r in rows] == ["AD3"]


def test_query_validation():
    with pytest.raises(ValueError):
        InsightQuery(ORG_ID, CLIENT_ID, JAN_31, JAN_1)
    with pytest.raises(ValueError):
        build_query(ORG_ID, CLIENT_ID, JAN_1, JAN_31, "keywords")


def test_backend_failure_degrades_to_empty_result(monkeypatch):
    captured = []
    monkeypatch.setattr(insight_query_service, "capture_exception", lambda e, extra=None: captured.append(extra))
    db = MagicMock()
    db.query.return_value.filter.return_value.order_by.return_value.all.side_effect = SQLAlchemyError("timeout")

    result = InsightQueryService(db).fetch_rows(build_query(ORG_ID, CLIENT_ID, JAN_1, JAN_31, "campaigns"))

    assert result.rows == []
    assert not result.ok
    assert result.error == "Failed to load campaign insights"
    assert captured[0]["level"] == "campaigns"
