"""Create insight fact tables and metric display configuration

Revision ID: 20260105_000001
Revises:
Create Date: 2026-01-05

WHAT:
    Creates the three daily insight tables (campaign, ad set, ad) and the
    per-entity metric display configuration table.

WHY:
    - One row per entity per day per level; the explorer aggregates on read
    - metric_display_config is upserted on its 4-column scope key, so the
      unique constraint doubles as the ON CONFLICT target

REFERENCES:
    - adsight/models.py (CampaignInsight, AdsetInsight, AdInsight, MetricDisplayConfig)
    - adsight/services/metric_config_service.py (upsert)
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20260105_000001'
down_revision = None
branch_labels = None
depends_on = None


def _insight_columns():
    """Columns shared by every insight table (fresh objects per call)."""
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('organization_id', sa.String, nullable=False),
        sa.Column('client_id', sa.String, nullable=False),
        sa.Column('campaign_id', sa.String, nullable=False),
        sa.Column('campaign_name', sa.String, nullable=True),
        sa.Column('status', sa.String, nullable=True),
        sa.Column('objective', sa.String, nullable=True),
        sa.Column('date', sa.Date, nullable=False),

        # Base measures only; derived metrics are computed on read
        sa.Column('impressions', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('reach', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('clicks', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('link_clicks', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('spend', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('leads', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('conversions', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('revenue', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('frequency', sa.Numeric(10, 4), nullable=False, server_default='0'),

        sa.Column('source', sa.String, nullable=False, server_default='api'),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('NOW()')),
    ]


def upgrade() -> None:
    # =========================================================================
    # STEP 1: Insight fact tables
    # =========================================================================

    op.create_table(
        'meta_campaign_insights',
        *_insight_columns(),
        sa.UniqueConstraint('organization_id', 'client_id', 'campaign_id', 'date',
                            name='uq_campaign_insights_day'),
    )

    op.create_table(
        'meta_adset_insights',
        *_insight_columns(),
        sa.Column('adset_id', sa.String, nullable=False),
        sa.Column('adset_name', sa.String, nullable=True),
        sa.UniqueConstraint('organization_id', 'client_id', 'adset_id', 'date',
                            name='uq_adset_insights_day'),
    )

    op.create_table(
        'meta_ad_insights',
        *_insight_columns(),
        sa.Column('adset_id', sa.String, nullable=False),
        sa.Column('adset_name', sa.String, nullable=True),
        sa.Column('ad_id', sa.String, nullable=False),
        sa.Column('ad_name', sa.String, nullable=True),
        sa.Column('thumbnail_url', sa.String, nullable=True),
        sa.UniqueConstraint('organization_id', 'client_id', 'ad_id', 'date',
                            name='uq_ad_insights_day'),
    )

    # =========================================================================
    # STEP 2: Range query indexes
    # =========================================================================
    # WHAT: (organization_id, client_id, date) on each level
    # WHY: Every explorer query is a scoped date range

    op.create_index('ix_campaign_insights_scope_date', 'meta_campaign_insights',
                    ['organization_id', 'client_id', 'date'])
    op.create_index('ix_adset_insights_scope_date', 'meta_adset_insights',
                    ['organization_id', 'client_id', 'date'])
    op.create_index('ix_ad_insights_scope_date', 'meta_ad_insights',
                    ['organization_id', 'client_id', 'date'])

    # =========================================================================
    # STEP 3: Metric display configuration
    # =========================================================================

    op.create_table(
        'metric_display_config',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('organization_id', sa.String, nullable=False),
        sa.Column('client_id', sa.String, nullable=False),
        sa.Column('entity_type', sa.String, nullable=False),
        sa.Column('entity_id', sa.String, nullable=False),
        sa.Column('visible_metrics', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('organization_id', 'client_id', 'entity_type', 'entity_id',
                            name='uq_metric_display_config_scope'),
    )


def downgrade() -> None:
    op.drop_table('metric_display_config')

    op.drop_index('ix_ad_insights_scope_date', 'meta_ad_insights')
    op.drop_index('ix_adset_insights_scope_date', 'meta_adset_insights')
    op.drop_index('ix_campaign_insights_scope_date', 'meta_campaign_insights')

    op.drop_table('meta_ad_insights')
    op.drop_table('meta_adset_insights')
    op.drop_table('meta_campaign_insights')
