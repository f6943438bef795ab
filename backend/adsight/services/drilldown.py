"""
Drill-Down Navigator
====================

WHAT:
    Tracks which drill level the explorer shows and which parent entities
    scope it, and turns that into the parent-scope filter for the insight
    query.

STATE:
    level ∈ {campaigns, adsets, ads}
    selected_campaign_ids / selected_adset_ids / selected_ad_ids
    checked_ids (checkbox multi-select at the current level)
    search_query, breadcrumbs

TRANSITIONS:
    drill_down(id)   campaigns → adsets: selected_campaign_ids = {id},
                     selected_adset_ids cleared.
                     adsets → ads: selected_adset_ids = {id},
                     selected_ad_ids cleared.
                     ads: terminal, no-op.
    switch_tab(lvl)  any → lvl. Selections are kept and accumulate;
                     checkbox selection is cleared.
    clear_filters()  → campaigns with every selection cleared.
    navigate_to(i)   jump back to breadcrumb i. campaigns clears every
                     selection, adsets clears ad set and ad selections.
    Drill-down and breadcrumb jumps also reset search and checkboxes.

PARENT SCOPE:
    campaigns → none
    adsets    → campaign_id IN selected_campaign_ids
    ads       → adset_id IN selected_adset_ids, else campaign_id IN
                selected_campaign_ids

REFERENCES:
    - adsight/hierarchy.py (level order)
    - adsight/services/insight_query_service.py (applies ParentScope)
    - adsight/routers/campaign_insights.py (POST /navigation)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from adsight import models
from adsight.hierarchy import LEVEL_CONFIG, resolve_level

logger = logging.getLogger(__name__)


LEVEL_ORDER = (models.DrillLevel.campaigns, models.DrillLevel.adsets, models.DrillLevel.ads)


def _dedupe(ids: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for entity_id in ids:
        if entity_id and entity_id not in seen:
            seen.append(entity_id)
    return seen


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


@dataclass(frozen=True)
class Breadcrumb:
    level: models.DrillLevel
    label: str
    entity_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level.value, "label": self.label, "entity_id": self.entity_id}


def root_breadcrumb() -> Breadcrumb:
    return Breadcrumb(level=models.DrillLevel.campaigns, label=LEVEL_CONFIG[models.DrillLevel.campaigns].label)


@dataclass(frozen=True)
class ParentScope:
    """Parent filter for a level's query: `column IN ids`, or nothing."""

    column: Optional[str] = None
    ids: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.column is None or not self.ids

    @classmethod
    def for_level(
        cls,
        level: Union[str, models.DrillLevel],
        campaign_ids: Sequence[str] = (),
        adset_ids: Sequence[str] = (),
    ) -> "ParentScope":
        level = resolve_level(level)
        campaign_ids = tuple(_dedupe(campaign_ids))
        adset_ids = tuple(_dedupe(adset_ids))

        if level == models.DrillLevel.adsets and campaign_ids:
            return cls(column="campaign_id", ids=campaign_ids)
        if level == models.DrillLevel.ads:
            if adset_ids:
                return cls(column="adset_id", ids=adset_ids)
            if campaign_ids:
                return cls(column="campaign_id", ids=campaign_ids)
        return cls()


@dataclass
class DrillDownNavigator:
    """
    Explorer navigation state machine.

    Usage:
        nav = DrillDownNavigator()
        nav.drill_down("A", name="Spring Sale")
        nav.level                 # DrillLevel.adsets
        nav.parent_scope()        # ParentScope(column="campaign_id", ids=("A",))
    """

    level: models.DrillLevel = models.DrillLevel.campaigns
    selected_campaign_ids: List[str] = field(default_factory=list)
    selected_adset_ids: List[str] = field(default_factory=list)
    selected_ad_ids: List[str] = field(default_factory=list)
    checked_ids: List[str] = field(default_factory=list)
    search_query: str = ""
    breadcrumbs: List[Breadcrumb] = field(default_factory=lambda: [root_breadcrumb()])

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def drill_down(self, entity_id: str, name: Optional[str] = None) -> bool:
        """Narrow into one entity's children. Returns False at the ads level."""
        if not entity_id:
            raise ValueError("drill_down requires an entity id")

        child = LEVEL_CONFIG[self.level].child
        if child is None:
            logger.debug(f"[NAVIGATOR] drill_down({entity_id}) ignored at terminal level {self.level.value}")
            return False

        if self.level == models.DrillLevel.campaigns:
            self.selected_campaign_ids = [entity_id]
            self.selected_adset_ids = []
        else:
            self.selected_adset_ids = [entity_id]
            self.selected_ad_ids = []

        self.level = child
        self.breadcrumbs.append(Breadcrumb(level=child, label=name or entity_id, entity_id=entity_id))
        self._reset_view()
        logger.debug(f"[NAVIGATOR] Drilled into {entity_id} → {child.value}")
        return True

    def switch_tab(self, level: Union[str, models.DrillLevel]) -> None:
        """Change the displayed level without touching drill selections."""
        level = resolve_level(level)
        if level == self.level:
            return

        target_rank = LEVEL_ORDER.index(level)
        trail = [crumb for crumb in self.breadcrumbs if LEVEL_ORDER.index(crumb.level) <= target_rank]
        if not trail:
            trail = [root_breadcrumb()]
        if trail[-1].level != level:
            trail.append(Breadcrumb(level=level, label=LEVEL_CONFIG[level].label))

        self.level = level
        self.breadcrumbs = trail
        self.checked_ids = []

    def clear_filters(self) -> None:
        """Reset every selection and return to campaigns."""
        self.level = models.DrillLevel.campaigns
        self.selected_campaign_ids = []
        self.selected_adset_ids = []
        self.selected_ad_ids = []
        self.breadcrumbs = [root_breadcrumb()]
        self._reset_view()

    def navigate_to(self, index: int) -> None:
        """Jump back to breadcrumb `index`, truncating the trail after it."""
        if index < 0 or index >= len(self.breadcrumbs):
            raise ValueError(f"Breadcrumb index {index} out of range (0..{len(self.breadcrumbs) - 1})")

        target = self.breadcrumbs[index]
        self.breadcrumbs = self.breadcrumbs[: index + 1]
        self.level = target.level

        if target.level == models.DrillLevel.campaigns:
            self.selected_campaign_ids = []
            self.selected_adset_ids = []
            self.selected_ad_ids = []
        elif target.level == models.DrillLevel.adsets:
            self.selected_adset_ids = []
            self.selected_ad_ids = []

        self._reset_view()

    def _reset_view(self) -> None:
        self.search_query = ""
        self.checked_ids = []

    # ------------------------------------------------------------------
    # Checkbox multi-select (current level only)
    # ------------------------------------------------------------------

    def toggle_checked(self, entity_id: str) -> None:
        if entity_id in self.checked_ids:
            self.checked_ids.remove(entity_id)
        else:
            self.checked_ids.append(entity_id)

    def select_all_visible(self, visible_ids: Sequence[str]) -> None:
        """Check every visible (searched) entity, or uncheck them if all are checked."""
        visible = _dedupe(visible_ids)
        if visible and all(entity_id in self.checked_ids for entity_id in visible):
            self.checked_ids = [entity_id for entity_id in self.checked_ids if entity_id not in visible]
        else:
            self.checked_ids = _dedupe(list(self.checked_ids) + visible)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def parent_scope(self) -> ParentScope:
        return ParentScope.for_level(self.level, self.selected_campaign_ids, self.selected_adset_ids)

    def filter_summary(self) -> Optional[str]:
        """Banner text such as "Filtering by 2 campaigns + 1 ad set"."""
        parts = []
        if self.selected_campaign_ids:
            parts.append(_plural(len(self.selected_campaign_ids), "campaign", "campaigns"))
        if self.selected_adset_ids:
            parts.append(_plural(len(self.selected_adset_ids), "ad set", "ad sets"))
        if not parts:
            return None
        return "Filtering by " + " + ".join(parts)

    def config_entity_id(self) -> Optional[str]:
        """Entity id whose metric configuration drives the current view.

        The single drilled parent when there is exactly one, else None
        (the level-wide default).
        """
        if self.level == models.DrillLevel.adsets and len(self.selected_campaign_ids) == 1:
            return self.selected_campaign_ids[0]
        if self.level == models.DrillLevel.ads and len(self.selected_adset_ids) == 1:
            return self.selected_adset_ids[0]
        return None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_state(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "selected_campaign_ids": list(self.selected_campaign_ids),
            "selected_adset_ids": list(self.selected_adset_ids),
            "selected_ad_ids": list(self.selected_ad_ids),
            "checked_ids": list(self.checked_ids),
            "search_query": self.search_query,
            "breadcrumbs": [crumb.to_dict() for crumb in self.breadcrumbs],
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "DrillDownNavigator":
        """Rebuild a navigator from `to_state()` output.

        Raises:
            ValueError: unknown level in the state or its breadcrumbs
        """
        breadcrumbs = [
            Breadcrumb(
                level=resolve_level(crumb["level"]),
                label=crumb.get("label") or "",
                entity_id=crumb.get("entity_id"),
            )
            for crumb in state.get("breadcrumbs") or []
        ]
        return cls(
            level=resolve_level(state.get("level") or models.DrillLevel.campaigns),
            selected_campaign_ids=_dedupe(state.get("selected_campaign_ids") or []),
            selected_adset_ids=_dedupe(state.get("selected_adset_ids") or []),
            selected_ad_ids=_dedupe(state.get("selected_ad_ids") or []),
            checked_ids=_dedupe(state.get("checked_ids") or []),
            search_query=state.get("search_query") or "",
            breadcrumbs=breadcrumbs or [root_breadcrumb()],
        )
