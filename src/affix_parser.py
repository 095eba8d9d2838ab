"""
Runeforge - Affix Parser
Turns bonus text lines into structured Affix records.

An affix keeps the raw line, a grouping pattern with every signed number
replaced by '#', the first numeric value (or min-max range) and a value kind:
    "+15% Enhanced Damage"   → pattern "#% Enhanced Damage", value 15, percent
    "Adds 3-7 Fire Damage"   → pattern "Adds ## Fire Damage", value (3, 7), range
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from bs4 import Tag

from item_categories import BonusCategory
from markup_extractor import (
    find_bonus_row,
    split_cell_lines,
    split_runeword_bonus_lines,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = "#"

SIGNED_INT_PATTERN = re.compile(r"[+-]?\d+")
RANGE_PATTERN = re.compile(r"(\d+)-(\d+)")
FIRST_INT_PATTERN = re.compile(r"[+-]?(\d+)")
DIGIT_PATTERN = re.compile(r"\d")

AffixValue = Union[int, Tuple[int, int], None]


class ValueKind(str, Enum):
    FLAT = "flat"
    PERCENT = "percent"
    RANGE = "range"
    NONE = "none"


@dataclass(frozen=True)
class Affix:
    """One bonus line."""
    raw_text: str
    pattern: str
    value: AffixValue = None
    value_kind: ValueKind = ValueKind.NONE

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {
            "raw_text": self.raw_text,
            "pattern": self.pattern,
            "value": value,
            "value_kind": self.value_kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Affix":
        value = data.get("value")
        if isinstance(value, list):
            value = (value[0], value[1])
        return cls(
            raw_text=data.get("raw_text", ""),
            pattern=data.get("pattern", ""),
            value=value,
            value_kind=ValueKind(data.get("value_kind", ValueKind.NONE.value)),
        )


@dataclass(frozen=True)
class SocketableBonuses:
    """Bonus lines for the three item-slot columns."""
    weapons_gloves: Tuple[Affix, ...] = field(default_factory=tuple)
    helms_boots: Tuple[Affix, ...] = field(default_factory=tuple)
    armor_shields_belts: Tuple[Affix, ...] = field(default_factory=tuple)

    def for_category(self, category: BonusCategory) -> Tuple[Affix, ...]:
        return getattr(self, category.value)

    def all_affixes(self) -> List[Affix]:
        return [*self.weapons_gloves, *self.helms_boots, *self.armor_shields_belts]

    def to_dict(self) -> Dict[str, Any]:
        return {
            category.value: [a.to_dict() for a in self.for_category(category)]
            for category in BonusCategory
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SocketableBonuses":
        data = data or {}
        return cls(**{
            category.value: tuple(Affix.from_dict(a) for a in data.get(category.value, []))
            for category in BonusCategory
        })


EMPTY_BONUSES = SocketableBonuses()


# ─── Value extraction ───────────────────────────────

def make_pattern(text: str) -> str:
    """Replace every maximal signed-integer run with a single '#'."""
    return SIGNED_INT_PATTERN.sub(PLACEHOLDER, text)


def extract_value(text: str) -> AffixValue:
    """First min-max range, else the first integer's magnitude, else None."""
    m = RANGE_PATTERN.search(text)
    if m:
        return (int(m.group(1)), int(m.group(2)))
    m = FIRST_INT_PATTERN.search(text)
    if m:
        return int(m.group(1))
    return None


def detect_value_kind(text: str) -> ValueKind:
    if RANGE_PATTERN.search(text):
        return ValueKind.RANGE
    if "%" in text:
        return ValueKind.PERCENT
    if DIGIT_PATTERN.search(text):
        return ValueKind.FLAT
    return ValueKind.NONE


def build_affix(raw_text: str) -> Affix:
    return Affix(
        raw_text=raw_text,
        pattern=make_pattern(raw_text),
        value=extract_value(raw_text),
        value_kind=detect_value_kind(raw_text),
    )


def build_affixes(lines: Iterable[str]) -> Tuple[Affix, ...]:
    return tuple(build_affix(line) for line in lines)


# ─── Cell-level extraction ──────────────────────────

def parse_affixes(cell: Optional[Tag]) -> Tuple[Affix, ...]:
    """Every bonus line of a socketable bonus cell."""
    return build_affixes(split_cell_lines(cell))


def parse_runeword_affixes(cell: Optional[Tag]) -> Tuple[Affix, ...]:
    """Runeword-level bonus lines only (the rune bonuses after <br><br> are dropped)."""
    return build_affixes(split_runeword_bonus_lines(cell))


def parse_bonuses(header_row: Optional[Tag]) -> SocketableBonuses:
    """Read the three bonus columns belonging to a socketable header row."""
    if header_row is None:
        return EMPTY_BONUSES
    bonus_row = find_bonus_row(header_row)
    if bonus_row is None:
        return EMPTY_BONUSES

    cells = bonus_row.find_all("td")
    columns = [parse_affixes(cells[i]) if i < len(cells) else () for i in range(3)]
    return SocketableBonuses(
        weapons_gloves=columns[0],
        helms_boots=columns[1],
        armor_shields_belts=columns[2],
    )
