"""
Runeforge - Runeword Parser
Parses runewords.htm recipe rows into Runeword records.

Row layout (tr.recipeRow, at least 6 cells):
    0  name + "(N Socket)"        <font color="#908858"><b>Stone</b></font><br><br>(2 Socket)
    1  rune list                  format A: <FONT COLOR="WHITE">I Rune</FONT><br>... (one span per rune)
                                  format B: <font color="#908858">Amn Rune<br>Ral Rune<br>...</font>
    2  allowed item types         Staff<br><br>Excluded:<br>Orb<br>...
    3  weapons/gloves bonuses     "[runeword bonuses]<br><br>[rune bonuses]"
    4  helms/boots bonuses
    5  armor/shields/belts bonuses

One source row is one variant; rows sharing a name are numbered 1, 2, ...
in document order and never merged.
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bs4 import Tag

from affix_parser import Affix, SocketableBonuses, parse_runeword_affixes
from derived_fields import (
    RuneLookups,
    TierPointTotal,
    calculate_req_level,
    calculate_sort_key,
    calculate_tier_point_totals,
    resolve_rune_keys,
)
from markup_extractor import (
    BR_PATTERN,
    collapse_whitespace,
    decode_entities,
    inner_markup,
    parse_document,
    split_cell_lines,
    strip_tags,
)
from socketable_parser import RUNE_SUFFIX

logger = logging.getLogger(__name__)

RECIPE_ROW_SELECTOR = "tr.recipeRow"
NAME_SELECTOR = 'font[color="#908858"] b'
MIN_CELLS = 6
BONUS_CELL_INDEXES = (3, 4, 5)
EXCLUDED_MARKER = "Excluded:"

SOCKETS_PATTERN = re.compile(r"\((\d+)\s*Socket\)", re.IGNORECASE)


@dataclass(frozen=True)
class RawRuneword:
    """A parsed recipe row before derived fields are attached."""
    name: str
    variant: int
    sockets: int
    runes: Tuple[str, ...]
    allowed_items: Tuple[str, ...]
    excluded_items: Tuple[str, ...]
    affixes: Tuple[Affix, ...]
    column_affixes: SocketableBonuses


@dataclass(frozen=True)
class Runeword:
    name: str
    variant: int
    sockets: int
    runes: Tuple[str, ...]
    allowed_items: Tuple[str, ...] = ()
    excluded_items: Tuple[str, ...] = ()
    affixes: Tuple[Affix, ...] = ()                  # first populated bonus column
    column_affixes: SocketableBonuses = field(default_factory=SocketableBonuses)
    req_level: int = 0
    sort_key: int = 0
    tier_point_totals: Tuple[TierPointTotal, ...] = ()

    @property
    def key(self) -> Tuple[str, int]:
        return (self.name, self.variant)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "variant": self.variant,
            "sockets": self.sockets,
            "runes": list(self.runes),
            "allowed_items": list(self.allowed_items),
            "excluded_items": list(self.excluded_items),
            "affixes": [a.to_dict() for a in self.affixes],
            "column_affixes": self.column_affixes.to_dict(),
            "req_level": self.req_level,
            "sort_key": self.sort_key,
            "tier_point_totals": [t.to_dict() for t in self.tier_point_totals],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Runeword":
        return cls(
            name=data["name"],
            variant=int(data.get("variant", 1)),
            sockets=int(data.get("sockets", 0)),
            runes=tuple(data.get("runes", [])),
            allowed_items=tuple(data.get("allowed_items", [])),
            excluded_items=tuple(data.get("excluded_items", [])),
            affixes=tuple(Affix.from_dict(a) for a in data.get("affixes", [])),
            column_affixes=SocketableBonuses.from_dict(data.get("column_affixes")),
            req_level=int(data.get("req_level", 0)),
            sort_key=int(data.get("sort_key", 0)),
            tier_point_totals=tuple(
                TierPointTotal.from_dict(t) for t in data.get("tier_point_totals", [])
            ),
        )


# ─── Cell extraction ────────────────────────────────

def extract_name(cell: Tag) -> str:
    tag = cell.select_one(NAME_SELECTOR)
    return tag.get_text().strip() if tag is not None else ""


def extract_sockets(cell: Tag) -> int:
    m = SOCKETS_PATTERN.search(cell.get_text())
    return int(m.group(1)) if m else 0


def _runes_from_spans(cell: Tag) -> List[str]:
    """Format A: one colored span per rune, wrapper spans skipped."""
    runes = []
    for span in cell.find_all("font", attrs={"color": True}):
        if span.find("font") is not None or span.find("br") is not None:
            continue
        text = span.get_text().strip()
        if text.endswith(RUNE_SUFFIX):
            runes.append(text)
    return runes


def _runes_from_line_breaks(cell: Tag) -> List[str]:
    """Format B: plain rune names separated by <br> inside a wrapper span."""
    runes = []
    for span in cell.find_all("font", attrs={"color": True}):
        markup = inner_markup(span)
        if not BR_PATTERN.search(markup):
            continue
        for chunk in BR_PATTERN.split(markup):
            text = collapse_whitespace(decode_entities(strip_tags(chunk)))
            if text.endswith(RUNE_SUFFIX):
                runes.append(text)
        if runes:
            break
    return runes


def extract_runes(cell: Tag) -> List[str]:
    return _runes_from_spans(cell) or _runes_from_line_breaks(cell)


def extract_item_types(cell: Tag) -> Tuple[List[str], List[str]]:
    """(allowed, excluded) item types; "Excluded:" splits the two lists."""
    items = split_cell_lines(cell)
    if EXCLUDED_MARKER in items:
        idx = items.index(EXCLUDED_MARKER)
        return items[:idx], items[idx + 1:]
    return items, []


def extract_affixes(cells: Sequence[Tag]) -> Tuple[Tuple[Affix, ...], SocketableBonuses]:
    """First non-empty runeword bonus column, plus all three columns."""
    columns = [parse_runeword_affixes(cells[i]) if i < len(cells) else ()
               for i in BONUS_CELL_INDEXES]
    first = next((column for column in columns if column), ())
    return first, SocketableBonuses(
        weapons_gloves=columns[0],
        helms_boots=columns[1],
        armor_shields_belts=columns[2],
    )


# ─── Rows ───────────────────────────────────────────

def parse_runeword_rows(html: str) -> List[RawRuneword]:
    soup = parse_document(html)
    variants: Dict[str, int] = defaultdict(int)
    rows: List[RawRuneword] = []
    skipped = 0

    for row in soup.select(RECIPE_ROW_SELECTOR):
        cells = row.find_all("td")
        if len(cells) < MIN_CELLS:
            skipped += 1
            continue

        name = extract_name(cells[0])
        if not name:
            skipped += 1
            continue

        variants[name] += 1
        allowed, excluded = extract_item_types(cells[2])
        affixes, column_affixes = extract_affixes(cells)
        rows.append(RawRuneword(
            name=name,
            variant=variants[name],
            sockets=extract_sockets(cells[0]),
            runes=tuple(extract_runes(cells[1])),
            allowed_items=tuple(allowed),
            excluded_items=tuple(excluded),
            affixes=affixes,
            column_affixes=column_affixes,
        ))

    if skipped:
        logger.debug(f"RunewordParser: skipped {skipped} rows without a usable name/cells")
    return rows


def apply_derived_fields(raw: RawRuneword, lookups: Optional[RuneLookups]) -> Runeword:
    """Attach required level, sort key and tier point totals.

    A rune name shared by two families is read from the entry of the
    runeword's own family.
    """
    req_level = sort_key = 0
    totals: Tuple[TierPointTotal, ...] = ()
    if lookups is not None:
        keys = resolve_rune_keys(raw.runes, lookups.families)
        req_level = calculate_req_level(keys, lookups.req_levels)
        sort_key = calculate_sort_key(keys, req_level, lookups.priorities)
        totals = calculate_tier_point_totals(keys, lookups.points)

    return Runeword(
        name=raw.name,
        variant=raw.variant,
        sockets=raw.sockets,
        runes=raw.runes,
        allowed_items=raw.allowed_items,
        excluded_items=raw.excluded_items,
        affixes=raw.affixes,
        column_affixes=raw.column_affixes,
        req_level=req_level,
        sort_key=sort_key,
        tier_point_totals=totals,
    )


def parse_runewords_html(html: str, lookups: Optional[RuneLookups] = None) -> List[Runeword]:
    """Parse runewords.htm; derived fields stay zero/empty without lookups."""
    raw_rows = parse_runeword_rows(html)
    runewords = [apply_derived_fields(raw, lookups) for raw in raw_rows]
    logger.info(f"RunewordParser: parsed {len(runewords)} runewords "
                f"({len({rw.name for rw in runewords})} distinct names)")
    return runewords
