"""
Runeforge - Filter Engine
Search and facet filtering over parsed runewords and socketables.

Every predicate is pure and independent; filter_runewords() ANDs them and
keeps input order, so callers pass runewords already ordered by sort_key.

Facet conventions:
    item_types       {"Sword": True, "Helm": False, ...}; {} passes everything
    runes            {"esr:Ko Rune": True, "lod:Ko Rune": False, ...}; {} passes everything
    max_tier_points  {"esr:1": 12, "lod:2": None, ...}; None or missing = no ceiling
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from affix_parser import SocketableBonuses
from derived_fields import build_rune_families, resolve_rune_keys, tier_point_ceiling_key
from item_categories import get_relevant_categories
from runeword_parser import Runeword
from socketable_parser import (
    CRYSTAL_QUALITIES,
    GEM_QUALITIES,
    LOD_TIER_LABELS,
    EsrRune,
    KanjiRune,
    LodRune,
    ParsedSocketables,
    RuneCategory,
    rune_key,
)

logger = logging.getLogger(__name__)

SEARCH_TERM_PATTERN = re.compile(r'"([^"]+)"|(\S+)')

RuneCategoryMap = Dict[str, List[RuneCategory]]
RuneBonusMap = Dict[str, SocketableBonuses]
RunePriorityMap = Dict[str, int]


# ─── Search ─────────────────────────────────────────

def parse_search_terms(search_text: str) -> List[str]:
    """Lower-cased terms; "quoted phrases" stay one term."""
    terms = []
    for m in SEARCH_TERM_PATTERN.finditer(search_text.lower()):
        term = (m.group(1) or m.group(2)).strip()
        if term:
            terms.append(term)
    return terms


def rune_bonuses_text(runeword: Runeword, rune_bonuses: RuneBonusMap,
                      rune_categories: Optional[RuneCategoryMap] = None) -> str:
    """Bonus text of the constituent runes, limited to the runeword's item categories.

    With rune_categories, a shared rune name reads the bonuses of the
    runeword's own family.
    """
    categories = get_relevant_categories(runeword.allowed_items)
    keys = resolve_rune_keys(runeword.runes, rune_categories) if rune_categories else runeword.runes
    texts = []
    for key in keys:
        bonuses = rune_bonuses.get(key)
        if bonuses is None:
            continue
        for category in categories:
            texts.extend(a.raw_text for a in bonuses.for_category(category))
    return " ".join(texts)


def matches_search(runeword: Runeword, terms: Sequence[str], rune_bonuses: RuneBonusMap,
                   rune_categories: Optional[RuneCategoryMap] = None) -> bool:
    if not terms:
        return True
    affix_text = " ".join(a.raw_text for a in runeword.affixes)
    rune_text = rune_bonuses_text(runeword, rune_bonuses, rune_categories)
    text = f"{runeword.name} {affix_text} {rune_text}".lower()
    return all(term in text for term in terms)


# ─── Facet predicates ───────────────────────────────

def matches_sockets(runeword: Runeword, sockets: Optional[int]) -> bool:
    return sockets is None or runeword.sockets == sockets


def matches_max_req_level(runeword: Runeword, max_req_level: Optional[int]) -> bool:
    """Records stored before req_level existed always pass."""
    if max_req_level is None:
        return True
    req_level = getattr(runeword, "req_level", None)
    return req_level is None or req_level <= max_req_level


def matches_item_types(runeword: Runeword, selected: Mapping[str, bool]) -> bool:
    if not selected:
        return True
    return any(selected.get(item, False) for item in runeword.allowed_items)


def matches_runes(runeword: Runeword, selected: Mapping[str, bool], categories: RuneCategoryMap) -> bool:
    """Every rune must be selected in at least one of the families it belongs to."""
    if not selected:
        return True
    return all(
        any(selected.get(rune_key(category, rune), False) for category in categories.get(rune, ()))
        for rune in runeword.runes
    )


def matches_tier_points(runeword: Runeword, max_tier_points: Mapping[str, Optional[int]]) -> bool:
    """A ceiling only constrains runewords that have points in its bucket."""
    if not max_tier_points:
        return True
    for total in runeword.tier_point_totals:
        ceiling = max_tier_points.get(tier_point_ceiling_key(total.category, total.tier))
        if ceiling is not None and total.total_points > ceiling:
            return False
    return True


# ─── Rune maps ──────────────────────────────────────
# The bonus map is written LoD, Kanji, ESR so the bare key of a shared name
# resolves to ESR, matching the derived-field lookups.

def build_rune_category_map(esr_runes: Iterable[EsrRune], lod_runes: Iterable[LodRune],
                            kanji_runes: Iterable[KanjiRune]) -> RuneCategoryMap:
    return build_rune_families(esr_runes, lod_runes, kanji_runes)


def build_rune_bonus_map(esr_runes: Iterable[EsrRune], lod_runes: Iterable[LodRune],
                         kanji_runes: Iterable[KanjiRune]) -> RuneBonusMap:
    bonuses: RuneBonusMap = {}
    for family, runes in ((RuneCategory.LOD, lod_runes), (RuneCategory.KANJI, kanji_runes),
                          (RuneCategory.ESR, esr_runes)):
        for rune in runes:
            bonuses[rune.name] = rune.bonuses
            bonuses[rune_key(family, rune.name)] = rune.bonuses
    return bonuses


# ─── Runeword filtering ─────────────────────────────

@dataclass
class RunewordFilters:
    search_text: str = ""
    sockets: Optional[int] = None
    max_req_level: Optional[int] = None
    item_types: Dict[str, bool] = field(default_factory=dict)
    runes: Dict[str, bool] = field(default_factory=dict)
    max_tier_points: Dict[str, Optional[int]] = field(default_factory=dict)

    @property
    def search_terms(self) -> List[str]:
        return parse_search_terms(self.search_text)


def filter_runewords(runewords: Iterable[Runeword], filters: RunewordFilters, context) -> List[Runeword]:
    """Runewords passing every facet, in input order.

    context is a DataContext (rune_categories, rune_bonuses).
    """
    terms = filters.search_terms
    results = [
        rw for rw in runewords
        if matches_search(rw, terms, context.rune_bonuses, context.rune_categories)
        and matches_sockets(rw, filters.sockets)
        and matches_max_req_level(rw, filters.max_req_level)
        and matches_item_types(rw, filters.item_types)
        and matches_runes(rw, filters.runes, context.rune_categories)
        and matches_tier_points(rw, filters.max_tier_points)
    ]
    logger.debug(f"FilterEngine: {len(results)} runewords match")
    return results


def _partial_selection(selected: Mapping[str, bool]) -> Optional[str]:
    """Comma-joined selected keys, or None when everything (or nothing) is selected."""
    if not selected or all(selected.values()):
        return None
    keys = [key for key, on in selected.items() if on]
    return ",".join(keys) if keys else None


def facet_params(filters: RunewordFilters) -> Dict[str, str]:
    """Facet values as named strings for a share link; defaults are omitted."""
    params: Dict[str, str] = {}
    if filters.search_text:
        params["search"] = filters.search_text
    if filters.sockets is not None:
        params["sockets"] = str(filters.sockets)
    if filters.max_req_level is not None:
        params["level"] = str(filters.max_req_level)
    items = _partial_selection(filters.item_types)
    if items:
        params["items"] = items
    runes = _partial_selection(filters.runes)
    if runes:
        params["runes"] = runes
    ceilings = [f"{key}={value}" for key, value in filters.max_tier_points.items() if value is not None]
    if ceilings:
        params["points"] = ",".join(ceilings)
    return params


# ─── Unified socketables ────────────────────────────

class SocketableCategory(str, Enum):
    GEMS = "gems"
    ESR_RUNES = "esr"
    LOD_RUNES = "lod"
    KANJI_RUNES = "kanji"
    CRYSTALS = "crystals"


CATEGORY_ORDER: Dict[SocketableCategory, int] = {
    SocketableCategory.GEMS: 0,
    SocketableCategory.ESR_RUNES: 1,
    SocketableCategory.LOD_RUNES: 2,
    SocketableCategory.KANJI_RUNES: 3,
    SocketableCategory.CRYSTALS: 4,
}
CATEGORY_STRIDE = 1000

GEM_QUALITY_ORDER = {quality: i for i, quality in enumerate(GEM_QUALITIES)}
CRYSTAL_QUALITY_ORDER = {quality: i for i, quality in enumerate(CRYSTAL_QUALITIES)}


@dataclass(frozen=True)
class UnifiedSocketable:
    name: str
    category: SocketableCategory
    color: Optional[str]
    req_level: int
    bonuses: SocketableBonuses
    sort_order: int

    @property
    def searchable_text(self) -> str:
        bonus_text = " ".join(a.raw_text for a in self.bonuses.all_affixes())
        return f"{self.name} {bonus_text}".lower()


def build_unified_socketables(parsed: ParsedSocketables) -> List[UnifiedSocketable]:
    """One flat list across all families, in display order."""
    ordered: List[Tuple[SocketableCategory, list]] = [
        (SocketableCategory.GEMS, sorted(
            parsed.gems, key=lambda g: (g.type, GEM_QUALITY_ORDER.get(g.quality, 0)))),
        (SocketableCategory.ESR_RUNES, sorted(parsed.esr_runes, key=lambda r: r.tier)),
        (SocketableCategory.LOD_RUNES, sorted(parsed.lod_runes, key=lambda r: r.order)),
        (SocketableCategory.KANJI_RUNES, list(parsed.kanji_runes)),
        (SocketableCategory.CRYSTALS, sorted(
            parsed.crystals, key=lambda c: (c.type, CRYSTAL_QUALITY_ORDER.get(c.quality, 0)))),
    ]

    unified = []
    for category, records in ordered:
        base = CATEGORY_ORDER[category] * CATEGORY_STRIDE
        for index, record in enumerate(records):
            unified.append(UnifiedSocketable(
                name=record.name,
                category=category,
                color=getattr(record, "color", None) or None,
                req_level=record.req_level,
                bonuses=record.bonuses,
                sort_order=base + index,
            ))
    return unified


def filter_socketables(
    items: Iterable[UnifiedSocketable],
    enabled_categories: Optional[Iterable[SocketableCategory]] = None,
    search_text: str = "",
) -> List[UnifiedSocketable]:
    """Category toggle plus whitespace-split AND search over name and bonus text."""
    enabled = set(enabled_categories) if enabled_categories is not None else set(SocketableCategory)
    terms = search_text.lower().split()
    return [
        item for item in items
        if item.category in enabled
        and all(term in item.searchable_text for term in terms)
    ]


# ─── Rune groups ────────────────────────────────────

@dataclass(frozen=True)
class RuneGroup:
    label: str
    category: RuneCategory
    tier: Optional[int]
    runes: Tuple[str, ...]

    def selection_keys(self) -> List[str]:
        return [rune_key(self.category, rune) for rune in self.runes]


ESR_TIERS = range(1, 8)
LOD_TIERS = range(1, 4)


def build_rune_groups(esr_runes: Iterable[EsrRune], lod_runes: Iterable[LodRune],
                      kanji_runes: Iterable[KanjiRune]) -> List[RuneGroup]:
    """Checkbox groups: ESR per tier, LoD per tier band, Kanji as one group. Empty groups are dropped."""
    esr = sorted(esr_runes, key=lambda r: r.order)
    lod = sorted(lod_runes, key=lambda r: r.order)
    groups = []
    for tier in ESR_TIERS:
        names = tuple(r.name for r in esr if r.tier == tier)
        if names:
            groups.append(RuneGroup(f"ESR Tier {tier}", RuneCategory.ESR, tier, names))
    for tier in LOD_TIERS:
        names = tuple(r.name for r in lod if r.tier == tier)
        if names:
            groups.append(RuneGroup(f"LoD {LOD_TIER_LABELS[tier]}", RuneCategory.LOD, tier, names))
    kanji = tuple(r.name for r in kanji_runes)
    if kanji:
        groups.append(RuneGroup("Kanji Runes", RuneCategory.KANJI, None, kanji))
    return groups


def select_all_runes(groups: Iterable[RuneGroup], selected: bool = True) -> Dict[str, bool]:
    """Initial rune facet state covering every group."""
    return {key: selected for group in groups for key in group.selection_keys()}
