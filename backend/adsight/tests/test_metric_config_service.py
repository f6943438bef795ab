"""
Tests for the metric display configuration store.

WHAT:
    Validate adsight/services/metric_config_service.py: the entity →
    __default__ → hardcoded fallback chain, order preservation, upsert
    overwrite and the error policy (reads degrade, saves raise).

REFERENCES:
    - adsight/services/metric_config_service.py
    - adsight/models.py::MetricDisplayConfig
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from adsight import models
from adsight.metrics.registry import DEFAULT_CATALOG, DEFAULT_VISIBLE_METRICS, MetricCatalog, MetricDefinition, MetricType
from adsight.services import metric_config_service
from adsight.services.metric_config_service import (
    DEFAULT_ENTITY_ID,
    MetricConfig,
    MetricConfigSaveError,
    MetricConfigService,
)

from conftest import CLIENT_ID, ORG_ID


def _keys(definitions):
    return [d.key for d in definitions]


def test_no_config_falls_back_to_default_visible_metrics(test_db_session):
    service = MetricConfigService(test_db_session)

    config = service.get_config(ORG_ID, CLIENT_ID, "campaign")

    assert len(config) == 0
    assert config.resolve_metrics("X") == DEFAULT_CATALOG.resolve(DEFAULT_VISIBLE_METRICS)


def test_saved_order_is_read_back_unchanged(test_db_session):
    service = MetricConfigService(test_db_session)

    stored = service.save_config(ORG_ID, CLIENT_ID, "campaign", "X", ["spend", "leads", "ctr"])
    config = service.get_config(ORG_ID, CLIENT_ID, "campaign")

    assert stored == ["spend", "leads", "ctr"]
    assert config["X"] == ["spend", "leads", "ctr"]
    assert _keys(config.resolve_metrics("X")) == ["spend", "leads", "ctr"]


def test_fallback_chain_entity_then_level_default(test_db_session):
    service = MetricConfigService(test_db_session)
    service.save_config(ORG_ID, CLIENT_ID, "adset", None, ["roas", "spend"])
    service.save_config(ORG_ID, CLIENT_ID, "adset", "AS1", ["clicks"])

    config = service.get_config(ORG_ID, CLIENT_ID, "adset")

    assert set(config) == {DEFAULT_ENTITY_ID, "AS1"}
    assert _keys(config.resolve_metrics("AS1")) == ["clicks"]
    assert _keys(config.resolve_metrics("AS2")) == ["roas", "spend"]
    assert _keys(config.resolve_metrics(None)) == ["roas", "spend"]


def test_upsert_overwrites_existing_row(test_db_session):
    service = MetricConfigService(test_db_session)
    service.save_config(ORG_ID, CLIENT_ID, "campaign", "X", ["spend"])

    service.save_config(ORG_ID, CLIENT_ID, "campaign", "X", ["ctr", "spend"])

    rows = test_db_session.query(models.MetricDisplayConfig).all()
    assert len(rows) == 1
    assert service.get_config(ORG_ID, CLIENT_ID, "campaign")["X"] == ["ctr", "spend"]


def test_configs_are_scoped_by_tenant_and_level(test_db_session):
    service = MetricConfigService(test_db_session)
    service.save_config(ORG_ID, CLIENT_ID, "campaign", "X", ["spend"])
    service.save_config("org_other", CLIENT_ID, "campaign", "X", ["ctr"])
    service.save_config(ORG_ID, "client_other", "campaign", "X", ["cpl"])

    assert service.get_config(ORG_ID, CLIENT_ID, "campaign")["X"] == ["spend"]
    assert len(service.get_config(ORG_ID, CLIENT_ID, "adset")) == 0


def test_empty_list_is_a_real_configuration(test_db_session):
    service = MetricConfigService(test_db_session)
    service.save_config(ORG_ID, CLIENT_ID, "ad", "AD1", [])

    assert service.get_config(ORG_ID, CLIENT_ID, "ad").resolve_metrics("AD1") == []


def test_unknown_keys_are_stored_but_dropped_on_resolve(test_db_session):
    service = MetricConfigService(test_db_session)
    service.save_config(ORG_ID, CLIENT_ID, "campaign", "X", ["spend", "retired_metric", "ctr"])

    config = service.get_config(ORG_ID, CLIENT_ID, "campaign")

    assert config["X"] == ["spend", "retired_metric", "ctr"]
    assert _keys(config.resolve_metrics("X")) == ["spend", "ctr"]


def test_get_visible_metrics_single_entity(test_db_session):
    service = MetricConfigService(test_db_session)
    service.save_config(ORG_ID, CLIENT_ID, "campaign", "X", ["cpm", "spend"])

    assert _keys(service.get_visible_metrics(ORG_ID, CLIENT_ID, "campaign", "X")) == ["cpm", "spend"]
    assert _keys(service.get_visible_metrics(ORG_ID, CLIENT_ID, "campaign", "Y")) == list(DEFAULT_VISIBLE_METRICS)


def test_injected_catalog_and_defaults(test_db_session):
    catalog = MetricCatalog([
        MetricDefinition("spend", "Spend", "Spend", MetricType.currency),
        MetricDefinition("clicks", "Clicks", "Clicks", MetricType.number),
    ])
    service = MetricConfigService(test_db_session, catalog=catalog, default_metrics=["clicks", "ctr"])

    assert _keys(service.get_config(ORG_ID, CLIENT_ID, "campaign").resolve_metrics("X")) == ["clicks"]


def test_unknown_entity_type_raises(test_db_session):
    with pytest.raises(ValueError):
        MetricConfigService(test_db_session).get_config(ORG_ID, CLIENT_ID, "keyword")


def test_read_failure_degrades_to_defaults(monkeypatch):
    captured = []
    monkeypatch.setattr(metric_config_service, "capture_exception", lambda e, extra=None: captured.append(e))
    db = MagicMock()
    db.query.return_value.filter.return_value.all.side_effect = SQLAlchemyError("connection reset")

    config = MetricConfigService(db).get_config(ORG_ID, CLIENT_ID, "campaign")

    assert len(config) == 0
    assert config.resolve_keys("X") == list(DEFAULT_VISIBLE_METRICS)
    assert len(captured) == 1


def test_save_failure_rolls_back_and_raises(test_db_session, monkeypatch):
    captured = []
    monkeypatch.setattr(metric_config_service, "capture_exception", lambda e, extra=None: captured.append(extra))
    monkeypatch.setattr(test_db_session, "commit", MagicMock(side_effect=SQLAlchemyError("disk full")))
    rollback = MagicMock(wraps=test_db_session.rollback)
    monkeypatch.setattr(test_db_session, "rollback", rollback)

    with pytest.raises(MetricConfigSaveError) as exc_info:
        MetricConfigService(test_db_session).save_config(ORG_ID, CLIENT_ID, "campaign", None, ["spend"])

    assert exc_info.value.entity_id == DEFAULT_ENTITY_ID
    assert exc_info.value.entity_type == "campaign"
    rollback.assert_called_once()
    assert captured[0]["entity_id"] == DEFAULT_ENTITY_ID


def test_metric_config_mapping_resolution_without_database():
    config = MetricConfig({"A": ["ctr"], DEFAULT_ENTITY_ID: ["spend"]})

    assert config.resolve_keys("A") == ["ctr"]
    assert config.resolve_keys("B") == ["spend"]
    assert MetricConfig().resolve_keys("B") == list(DEFAULT_VISIBLE_METRICS)
