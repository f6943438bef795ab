"""SQLAlchemy ORM models and enums.

This module defines the insight fact tables (one per drill level) and the
per-entity metric display configuration. Organization and client ids are
opaque strings owned by the platform that provisions tenants; rows are
always read scoped by both.
"""

import uuid
from datetime import datetime
import enum

from sqlalchemy import Column, String, DateTime, Date, BigInteger, Numeric, JSON, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base


# Single Base used by the entire application
Base = declarative_base()


# Enums ---------------------------------------------------------

class DrillLevel(str, enum.Enum):
    """Granularity tier the explorer is currently displaying."""
    campaigns = "campaigns"
    adsets = "adsets"
    ads = "ads"


class EntityTypeEnum(str, enum.Enum):
    """Entity type used to scope metric display configuration.

    `general` is the organization/client wide dashboard (no drill level).
    """
    general = "general"
    campaign = "campaign"
    adset = "adset"
    ad = "ad"


class InsightSourceEnum(str, enum.Enum):
    api = "api"
    manual = "manual"


# Insight facts ---------------------------------------------------

class _InsightColumns:
    """Columns shared by the three insight fact tables.

    Each row is one entity on one day. Base measures only: derived metrics
    (CTR, CPL, ...) are never stored, they are recomputed from summed bases.
    """

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(String, nullable=False)
    client_id = Column(String, nullable=False)

    campaign_id = Column(String, nullable=False)
    campaign_name = Column(String, nullable=True)

    status = Column(String, nullable=True)
    objective = Column(String, nullable=True)
    date = Column(Date, nullable=False)

    impressions = Column(BigInteger, nullable=False, default=0)
    reach = Column(BigInteger, nullable=False, default=0)
    clicks = Column(BigInteger, nullable=False, default=0)
    link_clicks = Column(BigInteger, nullable=False, default=0)
    spend = Column(Numeric(18, 4), nullable=False, default=0)
    leads = Column(Numeric(18, 4), nullable=False, default=0)
    conversions = Column(Numeric(18, 4), nullable=False, default=0)
    revenue = Column(Numeric(18, 4), nullable=False, default=0)
    frequency = Column(Numeric(10, 4), nullable=False, default=0)

    source = Column(String, nullable=False, default=InsightSourceEnum.api.value)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CampaignInsight(_InsightColumns, Base):
    """Daily campaign-level insight row."""
    __tablename__ = "meta_campaign_insights"
    __table_args__ = (
        UniqueConstraint("organization_id", "client_id", "campaign_id", "date", name="uq_campaign_insights_day"),
        Index("ix_campaign_insights_scope_date", "organization_id", "client_id", "date"),
    )

    def __str__(self):
        return f"{self.date} - {self.campaign_name or self.campaign_id} - {self.spend}"


class AdsetInsight(_InsightColumns, Base):
    """Daily ad set-level insight row (carries its parent campaign)."""
    __tablename__ = "meta_adset_insights"
    __table_args__ = (
        UniqueConstraint("organization_id", "client_id", "adset_id", "date", name="uq_adset_insights_day"),
        Index("ix_adset_insights_scope_date", "organization_id", "client_id", "date"),
    )

    adset_id = Column(String, nullable=False)
    adset_name = Column(String, nullable=True)

    def __str__(self):
        return f"{self.date} - {self.adset_name or self.adset_id} - {self.spend}"


class AdInsight(_InsightColumns, Base):
    """Daily ad-level insight row (carries its parent ad set and campaign)."""
    __tablename__ = "meta_ad_insights"
    __table_args__ = (
        UniqueConstraint("organization_id", "client_id", "ad_id", "date", name="uq_ad_insights_day"),
        Index("ix_ad_insights_scope_date", "organization_id", "client_id", "date"),
    )

    adset_id = Column(String, nullable=False)
    adset_name = Column(String, nullable=True)
    ad_id = Column(String, nullable=False)
    ad_name = Column(String, nullable=True)
    thumbnail_url = Column(String, nullable=True)

    def __str__(self):
        return f"{self.date} - {self.ad_name or self.ad_id} - {self.spend}"


# Metric display configuration -----------------------------------

class MetricDisplayConfig(Base):
    """Ordered list of visible metric keys for one entity.

    Keyed by (organization_id, client_id, entity_type, entity_id). The
    `__default__` entity id holds the level-wide fallback. `visible_metrics`
    order is the display order chosen by the user, not catalog order.
    """
    __tablename__ = "metric_display_config"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "client_id", "entity_type", "entity_id",
            name="uq_metric_display_config_scope",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(String, nullable=False)
    client_id = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    visible_metrics = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __str__(self):
        return f"{self.entity_type}:{self.entity_id} ({len(self.visible_metrics or [])} metrics)"
