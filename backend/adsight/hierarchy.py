"""
Drill Level Hierarchy
=====================

WHAT:
    Static description of the campaign → ad set → ad hierarchy: for every
    drill level, which column identifies an entity, which column names it,
    which entity type its metric configuration is stored under, and which
    fact table holds its daily rows.

WHY:
    The aggregator, the query service and the navigator all need the same
    level mapping. Keeping it here avoids three slightly different
    if/elif ladders drifting apart.

REFERENCES:
    - adsight/models.py (DrillLevel, EntityTypeEnum, insight tables)
    - adsight/services/insight_aggregator.py (grouping)
    - adsight/services/insight_query_service.py (parent-scope filters)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Type, Union

from adsight import models


@dataclass(frozen=True)
class LevelConfig:
    level: models.DrillLevel
    label: str
    entity_type: models.EntityTypeEnum
    group_key: str
    name_key: str
    placeholder_name: str
    model: Type[models.Base]
    child: Optional[models.DrillLevel] = None


LEVEL_CONFIG: Dict[models.DrillLevel, LevelConfig] = {
    models.DrillLevel.campaigns: LevelConfig(
        level=models.DrillLevel.campaigns,
        label="Campaigns",
        entity_type=models.EntityTypeEnum.campaign,
        group_key="campaign_id",
        name_key="campaign_name",
        placeholder_name="Unnamed campaign",
        model=models.CampaignInsight,
        child=models.DrillLevel.adsets,
    ),
    models.DrillLevel.adsets: LevelConfig(
        level=models.DrillLevel.adsets,
        label="Ad Sets",
        entity_type=models.EntityTypeEnum.adset,
        group_key="adset_id",
        name_key="adset_name",
        placeholder_name="Unnamed ad set",
        model=models.AdsetInsight,
        child=models.DrillLevel.ads,
    ),
    models.DrillLevel.ads: LevelConfig(
        level=models.DrillLevel.ads,
        label="Ads",
        entity_type=models.EntityTypeEnum.ad,
        group_key="ad_id",
        name_key="ad_name",
        placeholder_name="Unnamed ad",
        model=models.AdInsight,
        child=None,
    ),
}


def resolve_level(level: Union[str, models.DrillLevel]) -> models.DrillLevel:
    """Validate and cast a drill level string into DrillLevel."""

    try:
        return models.DrillLevel(level)
    except ValueError as exc:
        raise ValueError(
            f"Unsupported drill level '{level}'. Expected campaigns/adsets/ads"
        ) from exc


def level_config(level: Union[str, models.DrillLevel]) -> LevelConfig:
    return LEVEL_CONFIG[resolve_level(level)]


def resolve_entity_type(entity_type: Union[str, models.EntityTypeEnum]) -> models.EntityTypeEnum:
    """Validate and cast an entity type string into EntityTypeEnum."""

    try:
        return models.EntityTypeEnum(entity_type)
    except ValueError as exc:
        raise ValueError(
            f"Unsupported entity type '{entity_type}'. Expected general/campaign/adset/ad"
        ) from exc
