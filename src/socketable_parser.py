"""
Runeforge - Socketable Parser
Classifies every item header in gems.htm into gems, crystals and the three
rune families, and builds typed records for each.

Classification precedence (first match wins):
    gem      name contains one of the 8 gem types
    crystal  name contains one of the 12 crystal types
    kanji    ends in " Rune" and the inner font is BLUE
    esr      ends in " Rune" with any other inner font color
    lod      ends in " Rune" with no inner font color and a canonical LoD name

"Ko Rune" is the one name found in two families: a colored header yields an
ESR rune and a plain header yields the LoD rune.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bs4 import Tag

from affix_parser import SocketableBonuses, parse_bonuses
from markup_extractor import (
    ColorKind,
    FontColor,
    find_header_cells,
    get_inner_font_color,
    get_item_name,
    header_row_of,
    parse_document,
    parse_req_level,
)

logger = logging.getLogger(__name__)

# ─── Constants ──────────────────────────────────────

RUNE_SUFFIX = " Rune"

GEM_TYPES = ("Amethyst", "Sapphire", "Emerald", "Ruby", "Diamond", "Topaz", "Skull", "Obsidian")
GEM_QUALITIES = ("Chipped", "Flawed", "Standard", "Flawless", "Blemished", "Perfect")

CRYSTAL_TYPES = (
    "Shadow Quartz", "Frozen Soul", "Bleeding Stone", "Burning Sulphur",
    "Dark Azurite", "Bitter Peridot", "Pulsing Opal", "Enigmatic Cinnabar",
    "Tomb Jade", "Solid Mercury", "Storm Amber", "Tainted Tourmaline",
)
CRYSTAL_QUALITIES = ("Chipped", "Flawed", "Standard")

# Base quality carries no name prefix ("Ruby" is a Standard Ruby)
STANDARD_QUALITY = "Standard"

# Classic runes in sequence (El = 1 ... Zod = 33)
LOD_RUNE_NAMES = (
    "El", "Eld", "Tir", "Nef", "Eth", "Ith", "Tal", "Ral", "Ort", "Thul", "Amn",
    "Sol", "Shael", "Dol", "Hel", "Io", "Lum", "Ko", "Fal", "Lem", "Pul", "Um",
    "Mal", "Ist", "Gul", "Vex", "Ohm", "Lo", "Sur", "Ber", "Jah", "Cham", "Zod",
)
_LOD_ORDER = {name: i + 1 for i, name in enumerate(LOD_RUNE_NAMES)}

# Inclusive order bounds per LoD tier: Low / Mid / High
LOD_TIER_BOUNDS = ((1, 1, 11), (2, 12, 22), (3, 23, 33))
LOD_TIER_LABELS = {1: "Low", 2: "Mid", 3: "High"}

ESR_COLOR_TO_TIER = {
    "WHITE": 1,
    "RED": 2,
    "YELLOW": 3,
    "ORANGE": 4,
    "GREEN": 5,
    "GOLD": 6,
    "PURPLE": 7,
}
ESR_DEFAULT_TIER = 1

# Kanji headers carry no usable level; all Kanji runes share this one
KANJI_REQ_LEVEL = 60

POINTS_SUFFIX_PATTERN = re.compile(r"^(.+?)\s*\((\d+)\s*points?\)$", re.IGNORECASE)


class RuneCategory(str, Enum):
    """Rune families. ESR and LoD carry point systems, Kanji does not."""
    ESR = "esr"
    LOD = "lod"
    KANJI = "kanji"


def rune_key(category: RuneCategory, name: str) -> str:
    """Family-qualified key, e.g. "esr:Ko Rune"."""
    return f"{category.value}:{name}"


# ─── Records ────────────────────────────────────────

class _SocketableRecord:
    """Dict round-tripping shared by all socketable records."""

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["bonuses"] = self.bonuses.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        values = {f.name: data[f.name] for f in fields(cls) if f.name in data}
        values["bonuses"] = SocketableBonuses.from_dict(data.get("bonuses"))
        return cls(**values)


@dataclass(frozen=True)
class Gem(_SocketableRecord):
    name: str
    type: str
    quality: str
    color: str = ""
    req_level: int = 0
    bonuses: SocketableBonuses = field(default_factory=SocketableBonuses)


@dataclass(frozen=True)
class Crystal(_SocketableRecord):
    name: str
    type: str
    quality: str
    color: str = ""
    req_level: int = 0
    bonuses: SocketableBonuses = field(default_factory=SocketableBonuses)


@dataclass(frozen=True)
class EsrRune(_SocketableRecord):
    name: str
    order: int
    tier: int               # 1-7, from the header color
    color: str = ""
    req_level: int = 0
    bonuses: SocketableBonuses = field(default_factory=SocketableBonuses)
    points: Optional[int] = None  # from a "(N points)" name suffix


@dataclass(frozen=True)
class LodRune(_SocketableRecord):
    name: str
    order: int              # 1-33
    tier: int               # 1-3, from the order range
    req_level: int = 0
    bonuses: SocketableBonuses = field(default_factory=SocketableBonuses)
    points: Optional[int] = None


@dataclass(frozen=True)
class KanjiRune(_SocketableRecord):
    name: str
    req_level: int = KANJI_REQ_LEVEL
    bonuses: SocketableBonuses = field(default_factory=SocketableBonuses)


@dataclass(frozen=True)
class ParsedSocketables:
    gems: Tuple[Gem, ...] = ()
    crystals: Tuple[Crystal, ...] = ()
    esr_runes: Tuple[EsrRune, ...] = ()
    lod_runes: Tuple[LodRune, ...] = ()
    kanji_runes: Tuple[KanjiRune, ...] = ()

    @property
    def total(self) -> int:
        return (len(self.gems) + len(self.crystals) + len(self.esr_runes)
                + len(self.lod_runes) + len(self.kanji_runes))


@dataclass(frozen=True)
class SocketableName:
    """Name and color of one header cell, for completeness checks."""
    name: str
    color: FontColor
    is_rune: bool


# ─── Name helpers ───────────────────────────────────

def normalize_rune_name(raw_name: str) -> Tuple[str, Optional[int]]:
    """Strip a trailing "(N points)" suffix.

        "I Rune (1 points)" → ("I Rune", 1)
        "Ru Rune"           → ("Ru Rune", None)
    """
    text = raw_name.strip()
    m = POINTS_SUFFIX_PATTERN.match(text)
    if m:
        return m.group(1).strip(), int(m.group(2))
    return text, None


def _type_and_quality(name: str, types, qualities) -> Optional[Tuple[str, str]]:
    for item_type in types:
        if item_type not in name:
            continue
        for quality in qualities:
            if quality == STANDARD_QUALITY:
                if name == item_type:
                    return item_type, quality
            elif name.startswith(quality):
                return item_type, quality
    return None


def classify_gem(name: str) -> Optional[Tuple[str, str]]:
    """(type, quality) of a gem name, or None."""
    return _type_and_quality(name, GEM_TYPES, GEM_QUALITIES)


def classify_crystal(name: str) -> Optional[Tuple[str, str]]:
    return _type_and_quality(name, CRYSTAL_TYPES, CRYSTAL_QUALITIES)


def is_gem_name(name: str) -> bool:
    return any(t in name for t in GEM_TYPES)


def is_crystal_name(name: str) -> bool:
    return any(t in name for t in CRYSTAL_TYPES)


def bare_rune_name(name: str) -> str:
    return name[:-len(RUNE_SUFFIX)] if name.endswith(RUNE_SUFFIX) else name


def is_lod_rune_name(name: str) -> bool:
    return name.endswith(RUNE_SUFFIX) and bare_rune_name(name) in _LOD_ORDER


def lod_rune_order(name: str) -> int:
    """1-based LoD order, 0 for unknown names."""
    return _LOD_ORDER.get(bare_rune_name(name), 0)


def lod_tier_for_order(order: int) -> int:
    for tier, low, high in LOD_TIER_BOUNDS:
        if low <= order <= high:
            return tier
    return 0


def is_kanji_rune(name: str, color: FontColor) -> bool:
    return name.endswith(RUNE_SUFFIX) and color.kind == ColorKind.BLUE


def is_esr_rune(name: str, color: FontColor) -> bool:
    if not name.endswith(RUNE_SUFFIX):
        return False
    if color.kind != ColorKind.OTHER:
        return False
    return not is_gem_name(name) and not is_crystal_name(name)


def is_lod_rune(name: str, color: FontColor) -> bool:
    return color.kind == ColorKind.NONE and is_lod_rune_name(name)


# ─── Document parsing ───────────────────────────────

def _iter_headers(html: str):
    """Yield (name, points, color, req_level, header_row) per named header cell."""
    soup = parse_document(html)
    for cell in find_header_cells(soup):
        row = header_row_of(cell)
        if row is None:
            continue
        raw_name = get_item_name(cell)
        if not raw_name:
            continue
        name, points = normalize_rune_name(raw_name)
        color = get_inner_font_color(cell)
        yield name, points, color, parse_req_level(cell.get_text()), row


def parse_socketables_html(html: str) -> ParsedSocketables:
    """Parse every socketable family from gems.htm in one pass."""
    gems: List[Gem] = []
    crystals: List[Crystal] = []
    esr_runes: List[EsrRune] = []
    lod_runes: List[LodRune] = []
    kanji_runes: List[KanjiRune] = []
    skipped = 0

    for name, points, color, req_level, row in _iter_headers(html):
        if is_gem_name(name):
            gem = classify_gem(name)
            if gem is None:
                skipped += 1
                continue
            gems.append(Gem(name, gem[0], gem[1], color.value, req_level, parse_bonuses(row)))
        elif is_crystal_name(name):
            crystal = classify_crystal(name)
            if crystal is None:
                skipped += 1
                continue
            crystals.append(Crystal(name, crystal[0], crystal[1], color.value, req_level,
                                    parse_bonuses(row)))
        elif is_kanji_rune(name, color):
            kanji_runes.append(KanjiRune(name, KANJI_REQ_LEVEL, parse_bonuses(row)))
        elif is_esr_rune(name, color):
            esr_runes.append(EsrRune(
                name=name,
                order=len(esr_runes) + 1,
                tier=ESR_COLOR_TO_TIER.get(color.value, ESR_DEFAULT_TIER),
                color=color.value,
                req_level=req_level,
                bonuses=parse_bonuses(row),
                points=points,
            ))
        elif is_lod_rune(name, color):
            order = lod_rune_order(name)
            lod_runes.append(LodRune(
                name=name,
                order=order,
                tier=lod_tier_for_order(order),
                req_level=req_level,
                bonuses=parse_bonuses(row),
                points=points,
            ))
        else:
            skipped += 1
            logger.debug(f"SocketableParser: unclassified header '{name}' ({color.value or 'no color'})")

    lod_runes.sort(key=lambda r: r.order)

    parsed = ParsedSocketables(
        gems=tuple(gems),
        crystals=tuple(crystals),
        esr_runes=tuple(esr_runes),
        lod_runes=tuple(lod_runes),
        kanji_runes=tuple(kanji_runes),
    )
    logger.info(
        f"SocketableParser: {len(gems)} gems, {len(crystals)} crystals, "
        f"{len(esr_runes)} ESR runes, {len(lod_runes)} LoD runes, "
        f"{len(kanji_runes)} Kanji runes ({skipped} headers skipped)"
    )
    return parsed


def parse_gems_html(html: str) -> List[Gem]:
    return list(parse_socketables_html(html).gems)


def parse_crystals_html(html: str) -> List[Crystal]:
    return list(parse_socketables_html(html).crystals)


def parse_esr_runes_html(html: str) -> List[EsrRune]:
    return list(parse_socketables_html(html).esr_runes)


def parse_lod_runes_html(html: str) -> List[LodRune]:
    return list(parse_socketables_html(html).lod_runes)


def parse_kanji_runes_html(html: str) -> List[KanjiRune]:
    return list(parse_socketables_html(html).kanji_runes)


def extract_socketable_names(html: str) -> List[SocketableName]:
    """Every named header cell with its color, classified or not."""
    return [
        SocketableName(name, color, name.endswith(RUNE_SUFFIX))
        for name, _points, color, _lvl, _row in _iter_headers(html)
    ]
