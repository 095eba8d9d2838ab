"""
Runeforge - Derived Fields
Lookup tables built once per data refresh from the parsed runes, and the
per-runeword calculations that use them: required level, sort key and
per-tier point totals.

Keys: every table is keyed by bare rune name ("Ko Rune") and by the
family-qualified key ("esr:Ko Rune"). Only one name exists in two families;
its bare key resolves to the ESR entry and the qualified keys keep both.
Per-runeword calculations resolve such a name through the qualified key of
the runeword's own family (see resolve_rune_keys).
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from socketable_parser import EsrRune, KanjiRune, LodRune, RuneCategory, rune_key

logger = logging.getLogger(__name__)

# ─── Point tables ───────────────────────────────────
# Fallback values for runes whose header carries no "(N points)" suffix.
# Points double within each tier.

_ESR_TIERS = (
    ("I", "U", "Shi", "Ka", "N", "Ku", "Yo"),
    ("Ki", "Ri", "Mi", "Ya", "A", "Tsu", "Chi"),
    ("Sa", "Yu", "Ke", "E", "Ko", "Ra", "O"),
    ("Ho", "Me", "Ru", "Ta", "To", "Wa", "Ha"),
    ("Na", "Ni", "Se", "Fu", "Ma", "Hi", "Mo"),
    ("No", "Te", "Ro", "So", "Mu", "Ne", "Re"),
    ("Su", "He", "Nu", "Wo", "Null"),
)

_LOD_TIERS = (
    ("El", "Eld", "Tir", "Nef", "Eth", "Ith", "Tal", "Ral", "Ort", "Thul", "Amn"),
    ("Sol", "Shael", "Dol", "Hel", "Io", "Lum", "Ko", "Fal", "Lem", "Pul", "Um"),
    ("Mal", "Ist", "Gul", "Vex", "Ohm", "Lo", "Sur", "Ber", "Jah", "Cham", "Zod"),
)


def _doubling_table(tiers: Sequence[Sequence[str]]) -> Dict[str, int]:
    return {
        f"{name} Rune": 2 ** i
        for tier in tiers
        for i, name in enumerate(tier)
    }


DEFAULT_ESR_RUNE_POINTS: Dict[str, int] = _doubling_table(_ESR_TIERS)
DEFAULT_LOD_RUNE_POINTS: Dict[str, int] = _doubling_table(_LOD_TIERS)

# ─── Priorities ─────────────────────────────────────
# ESR: tier * 100 (100-700), Kanji: 800, LoD: 900 + order (901-933)
ESR_PRIORITY_PER_TIER = 100
KANJI_PRIORITY = 800
LOD_PRIORITY_BASE = 900
LOD_PRIORITY_THRESHOLD = 900

# Runewords containing a LoD rune sort after every ESR/Kanji runeword
LOD_SORT_OFFSET = 10000


@dataclass(frozen=True)
class RunePoints:
    points: int
    tier: int
    category: RuneCategory


@dataclass(frozen=True)
class TierPointTotal:
    category: RuneCategory
    tier: int
    total_points: int

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category.value, "tier": self.tier,
                "total_points": self.total_points}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TierPointTotal":
        return cls(RuneCategory(data["category"]), int(data["tier"]),
                   int(data["total_points"]))


@dataclass
class RuneLookups:
    """Per-refresh lookup tables, rebuilt from scratch on every refresh."""
    points: Dict[str, RunePoints] = field(default_factory=dict)
    req_levels: Dict[str, int] = field(default_factory=dict)
    priorities: Dict[str, int] = field(default_factory=dict)
    families: Dict[str, List[RuneCategory]] = field(default_factory=dict)


def build_rune_families(
    esr_runes: Iterable[EsrRune],
    lod_runes: Iterable[LodRune],
    kanji_runes: Iterable[KanjiRune],
) -> Dict[str, List[RuneCategory]]:
    """Rune name → families it appears in, ESR first, then LoD, then Kanji."""
    families: Dict[str, List[RuneCategory]] = {}
    for family, runes in ((RuneCategory.ESR, esr_runes), (RuneCategory.LOD, lod_runes),
                          (RuneCategory.KANJI, kanji_runes)):
        for rune in runes:
            owners = families.setdefault(rune.name, [])
            if family not in owners:
                owners.append(family)
    return families


def _resolve_points(explicit: Optional[int], name: str, defaults: Mapping[str, int]) -> Optional[int]:
    if explicit is not None:
        return explicit
    return defaults.get(name)


def build_rune_lookups(
    esr_runes: Iterable[EsrRune],
    lod_runes: Iterable[LodRune],
    kanji_runes: Iterable[KanjiRune],
) -> RuneLookups:
    """Build points, required-level and priority tables for one refresh.

    LoD runes are written first and ESR runes last, so a shared bare name
    always ends up with its ESR values in every table.
    """
    esr_runes = list(esr_runes)
    lod_runes = list(lod_runes)
    kanji_runes = list(kanji_runes)
    lookups = RuneLookups(families=build_rune_families(esr_runes, lod_runes, kanji_runes))

    for rune in lod_runes:
        key = rune_key(RuneCategory.LOD, rune.name)
        priority = LOD_PRIORITY_BASE + rune.order
        lookups.priorities[rune.name] = priority
        lookups.priorities[key] = priority
        lookups.req_levels[rune.name] = rune.req_level
        lookups.req_levels[key] = rune.req_level
        points = _resolve_points(rune.points, rune.name, DEFAULT_LOD_RUNE_POINTS)
        if points is not None:
            entry = RunePoints(points, rune.tier, RuneCategory.LOD)
            lookups.points[rune.name] = entry
            lookups.points[key] = entry

    for rune in kanji_runes:
        key = rune_key(RuneCategory.KANJI, rune.name)
        lookups.priorities[rune.name] = KANJI_PRIORITY
        lookups.priorities[key] = KANJI_PRIORITY
        lookups.req_levels[rune.name] = rune.req_level
        lookups.req_levels[key] = rune.req_level

    for rune in esr_runes:
        key = rune_key(RuneCategory.ESR, rune.name)
        priority = rune.tier * ESR_PRIORITY_PER_TIER
        lookups.priorities[rune.name] = priority
        lookups.priorities[key] = priority
        lookups.req_levels[rune.name] = rune.req_level
        lookups.req_levels[key] = rune.req_level
        points = _resolve_points(rune.points, rune.name, DEFAULT_ESR_RUNE_POINTS)
        if points is not None:
            entry = RunePoints(points, rune.tier, RuneCategory.ESR)
            lookups.points[rune.name] = entry
            lookups.points[key] = entry

    logger.debug(
        f"DerivedFields: lookups for {len(esr_runes)} ESR, {len(lod_runes)} LoD, "
        f"{len(kanji_runes)} Kanji runes ({len(lookups.points)} point keys)"
    )
    return lookups


# ─── Per-runeword calculations ──────────────────────

def is_lod_runeword(runes: Sequence[str], families: Mapping[str, Sequence[RuneCategory]]) -> bool:
    """True when at least one rune exists only as a LoD rune."""
    return any(list(families.get(rune, ())) == [RuneCategory.LOD] for rune in runes)


def resolve_rune_keys(runes: Sequence[str], families: Mapping[str, Sequence[RuneCategory]]) -> Tuple[str, ...]:
    """Lookup key per rune, with shared names qualified by the runeword's family.

    A LoD runeword reads a shared name through "lod:<name>"; any other
    runeword reads it through its first non-LoD family ("esr:Ko Rune").
    Names with a single family keep the bare key.
    """
    lod = is_lod_runeword(runes, families)
    keys = []
    for rune in runes:
        owners = list(families.get(rune, ()))
        if len(owners) < 2:
            keys.append(rune)
        elif lod and RuneCategory.LOD in owners:
            keys.append(rune_key(RuneCategory.LOD, rune))
        else:
            family = next((c for c in owners if c is not RuneCategory.LOD), owners[0])
            keys.append(rune_key(family, rune))
    return tuple(keys)


def calculate_req_level(runes: Sequence[str], req_levels: Mapping[str, int]) -> int:
    """Highest required level among the runes; unknown runes count as 0."""
    return max((req_levels.get(rune, 0) for rune in runes), default=0)


def calculate_sort_key(runes: Sequence[str], req_level: int, priorities: Mapping[str, int]) -> int:
    """req_level for ESR/Kanji runewords, LOD_SORT_OFFSET + req_level for LoD ones."""
    highest = max((priorities.get(rune, 0) for rune in runes), default=0)
    if highest >= LOD_PRIORITY_THRESHOLD:
        return LOD_SORT_OFFSET + req_level
    return req_level


def calculate_tier_point_totals(
    runes: Sequence[str],
    points: Mapping[str, RunePoints],
) -> Tuple[TierPointTotal, ...]:
    """Sum rune points per (family, tier); a repeated rune counts each time."""
    buckets: Dict[Tuple[RuneCategory, int], int] = defaultdict(int)
    for rune in runes:
        entry = points.get(rune)
        if entry is None:
            continue
        buckets[(entry.category, entry.tier)] += entry.points

    ordered = sorted(buckets.items(), key=lambda kv: (kv[0][0].value, kv[0][1]))
    return tuple(TierPointTotal(category, tier, total) for (category, tier), total in ordered)


def tier_point_ceiling_key(category: RuneCategory, tier: int) -> str:
    """Facet key for a per-tier point ceiling, e.g. "esr:3"."""
    return f"{category.value}:{tier}"
