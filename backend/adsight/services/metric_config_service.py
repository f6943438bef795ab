"""
Metric Configuration Service
============================

Per-entity, user-ordered lists of visible metric keys.

WHAT:
    - `get_config(org, client, entity_type)`: ONE query for every stored
      configuration at a level → `MetricConfig` (entity_id → keys).
    - `MetricConfig.resolve_metrics(entity_id)`: entity config, else the
      `__default__` config, else the hardcoded default list, mapped through
      the catalog. Unknown keys are dropped.
    - `save_config(...)`: upsert keyed by (org, client, entity_type,
      entity_id). `entity_id=None` saves the level-wide `__default__`.
      The given order is stored as-is. Last writer wins.
    - `get_visible_metrics(...)`: single-entity read with the same fallback.

ERROR POLICY:
    - Read failures (SQLAlchemyError) are logged, sent to Sentry and degrade
      to an empty config, so callers fall back to the defaults.
    - Save failures roll back, are logged and sent to Sentry, then re-raised
      as MetricConfigSaveError. No automatic retry.

REFERENCES:
    - adsight/models.py::MetricDisplayConfig (uq_metric_display_config_scope)
    - adsight/metrics/registry.py (MetricCatalog, DEFAULT_VISIBLE_METRICS)
    - adsight/routers/metric_config.py
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Union

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adsight import models
from adsight.hierarchy import resolve_entity_type
from adsight.metrics.registry import (
    DEFAULT_CATALOG,
    DEFAULT_VISIBLE_METRICS,
    MetricCatalog,
    MetricDefinition,
)
from adsight.telemetry import capture_exception

logger = logging.getLogger(__name__)


DEFAULT_ENTITY_ID = "__default__"

CONFLICT_COLUMNS = ("organization_id", "client_id", "entity_type", "entity_id")


class MetricConfigSaveError(Exception):
    """Persisting a metric display configuration failed."""

    def __init__(self, entity_type: str, entity_id: str, message: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Failed to save metric config for {entity_type}:{entity_id}: {message}")


class MetricConfig(Mapping):
    """Stored configurations for one level, with the fallback chain."""

    def __init__(
        self,
        entries: Optional[Dict[str, List[str]]] = None,
        catalog: MetricCatalog = DEFAULT_CATALOG,
        default_metrics: Sequence[str] = DEFAULT_VISIBLE_METRICS,
    ):
        self._entries = dict(entries or {})
        self.catalog = catalog
        self.default_metrics = list(default_metrics)

    def __getitem__(self, entity_id: str) -> List[str]:
        return self._entries[entity_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve_keys(self, entity_id: Optional[str] = None) -> List[str]:
        """Stored keys for the entity → `__default__` → default list.

        An empty stored list is a real configuration and is returned as-is.
        """
        if entity_id is not None and entity_id in self._entries:
            return list(self._entries[entity_id])
        if DEFAULT_ENTITY_ID in self._entries:
            return list(self._entries[DEFAULT_ENTITY_ID])
        return list(self.default_metrics)

    def resolve_metrics(self, entity_id: Optional[str] = None) -> List[MetricDefinition]:
        return self.catalog.resolve(self.resolve_keys(entity_id))


class MetricConfigService:
    """Read/write metric display configuration for one org + client."""

    def __init__(
        self,
        db: Session,
        catalog: MetricCatalog = DEFAULT_CATALOG,
        default_metrics: Sequence[str] = DEFAULT_VISIBLE_METRICS,
    ):
        self.db = db
        self.catalog = catalog
        self.default_metrics = list(default_metrics)

    def _empty(self) -> MetricConfig:
        return MetricConfig(catalog=self.catalog, default_metrics=self.default_metrics)

    def get_config(
        self,
        organization_id: str,
        client_id: str,
        entity_type: Union[str, models.EntityTypeEnum],
    ) -> MetricConfig:
        """Batch-fetch every stored configuration for a level in one query.

        Raises:
            ValueError: unknown entity type
        """
        entity_type = resolve_entity_type(entity_type)
        try:
            records = (
                self.db.query(models.MetricDisplayConfig)
                .filter(
                    models.MetricDisplayConfig.organization_id == organization_id,
                    models.MetricDisplayConfig.client_id == client_id,
                    models.MetricDisplayConfig.entity_type == entity_type.value,
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(
                f"[METRIC_CONFIG] Failed to load {entity_type.value} config for "
                f"org={organization_id} client={client_id}: {e}"
            )
            capture_exception(e, extra={
                "organization_id": organization_id,
                "client_id": client_id,
                "entity_type": entity_type.value,
            })
            return self._empty()

        entries = {record.entity_id: list(record.visible_metrics or []) for record in records}
        logger.debug(f"[METRIC_CONFIG] Loaded {len(entries)} {entity_type.value} configs")
        return MetricConfig(entries, catalog=self.catalog, default_metrics=self.default_metrics)

    def get_visible_metrics(
        self,
        organization_id: str,
        client_id: str,
        entity_type: Union[str, models.EntityTypeEnum],
        entity_id: Optional[str] = None,
    ) -> List[MetricDefinition]:
        """Resolved metrics for one entity (or the level default when None)."""
        entity_type = resolve_entity_type(entity_type)
        wanted = [DEFAULT_ENTITY_ID] if entity_id is None else [entity_id, DEFAULT_ENTITY_ID]
        try:
            records = (
                self.db.query(models.MetricDisplayConfig)
                .filter(
                    models.MetricDisplayConfig.organization_id == organization_id,
                    models.MetricDisplayConfig.client_id == client_id,
                    models.MetricDisplayConfig.entity_type == entity_type.value,
                    models.MetricDisplayConfig.entity_id.in_(wanted),
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"[METRIC_CONFIG] Failed to load {entity_type.value}:{entity_id}: {e}")
            capture_exception(e, extra={"entity_type": entity_type.value, "entity_id": entity_id})
            records = []

        config = MetricConfig(
            {record.entity_id: list(record.visible_metrics or []) for record in records},
            catalog=self.catalog,
            default_metrics=self.default_metrics,
        )
        return config.resolve_metrics(entity_id)

    def save_config(
        self,
        organization_id: str,
        client_id: str,
        entity_type: Union[str, models.EntityTypeEnum],
        entity_id: Optional[str],
        ordered_keys: Sequence[str],
    ) -> List[str]:
        """
        Upsert the ordered metric keys for an entity.

        Args:
            entity_id: Entity id, or None for the level-wide `__default__`
            ordered_keys: Display order chosen by the user, stored verbatim

        Returns:
            The stored list.

        Raises:
            ValueError: unknown entity type
            MetricConfigSaveError: the database rejected the write
        """
        entity_type = resolve_entity_type(entity_type)
        target_id = entity_id or DEFAULT_ENTITY_ID
        keys = list(ordered_keys)
        now = datetime.utcnow()

        values = {
            "organization_id": organization_id,
            "client_id": client_id,
            "entity_type": entity_type.value,
            "entity_id": target_id,
            "visible_metrics": keys,
            "created_at": now,
            "updated_at": now,
        }

        try:
            dialect = self.db.get_bind().dialect.name
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(models.MetricDisplayConfig).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=list(CONFLICT_COLUMNS),
                set_={
                    "visible_metrics": stmt.excluded.visible_metrics,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[METRIC_CONFIG] Failed to save {entity_type.value}:{target_id}: {e}")
            capture_exception(e, extra={
                "organization_id": organization_id,
                "client_id": client_id,
                "entity_type": entity_type.value,
                "entity_id": target_id,
            })
            raise MetricConfigSaveError(entity_type.value, target_id, str(e)) from e

        logger.info(
            f"[METRIC_CONFIG] Saved {len(keys)} metrics for {entity_type.value}:{target_id} "
            f"(org={organization_id} client={client_id})"
        )
        return keys
