"""
Runeforge - TXT Parsers
Row parsers for the mod's tab-separated game tables. Each parse_* function
takes the raw file content and returns frozen records; rows missing their
identifying columns are dropped.
"""

import logging
import re
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Set, Tuple

from property_translator import Property, PropertyDef, PropertyTranslator
from tsv_reader import TsvRow, collect_column_values, parse_boolean, parse_number, parse_tsv

logger = logging.getLogger(__name__)

# uniqueitems.txt: ore = Uni Ore, ast = Ascendancy Stone
EXCLUDED_UNIQUE_ITEM_CODES = frozenset({"ore", "ast"})
# Internal flags, never displayed
EXCLUDED_PROPERTY_CODES = frozenset({"tinkerflag", "tinkerflag2"})

UNIQUE_PROPERTY_COUNT = 12
SET_ITEM_PROPERTY_COUNT = 9
RUNEWORD_PROPERTY_COUNT = 7
RUNEWORD_RUNE_COUNT = 6
SET_ITEM_BONUS_SLOTS = 5
SET_FULL_BONUS_COUNT = 8
SET_PARTIAL_ITEM_COUNTS = range(2, 6)

SOCKETABLE_MOD_SLOTS = ("weapon", "helm", "shield")
SOCKETABLE_MOD_COUNT = 3

SKIPPED_ITEM_TYPE_CODES = frozenset({"", "none", "xxx"})
VALID_CHAR_CLASSES = frozenset({"ama", "sor", "nec", "pal", "bar", "dru", "ass", ""})

COUPON_DESCRIPTION = "Coupon"
_LEADING_DIGIT = re.compile(r"^\d")


# ─── Records ────────────────────────────────────────

@dataclass(frozen=True)
class TxtSocketable:
    name: str
    code: str
    letter: str
    weapon_mods: Tuple[Property, ...] = ()
    helm_mods: Tuple[Property, ...] = ()
    shield_mods: Tuple[Property, ...] = ()


@dataclass(frozen=True)
class TxtRuneRef:
    code: str
    name: str


@dataclass(frozen=True)
class TxtRuneword:
    id: str
    display_name: str
    complete: bool
    item_types: Tuple[str, ...]
    exclude_types: Tuple[str, ...]
    runes: Tuple[TxtRuneRef, ...]
    properties: Tuple[Property, ...]


@dataclass(frozen=True)
class TxtUniqueItem:
    index: str
    id: int
    version: int
    enabled: bool
    level: int
    level_req: int
    item_code: str
    item_name: str
    properties: Tuple[Property, ...] = ()
    resolved_properties: Tuple[str, ...] = ()   # pre-translated display text
    is_ancient_coupon: bool = False             # cube-only, never drops


@dataclass(frozen=True)
class TxtPartialBonus:
    item_count: int
    properties: Tuple[Property, ...]


@dataclass(frozen=True)
class TxtSet:
    index: str
    name: str
    partial_bonuses: Tuple[TxtPartialBonus, ...] = ()
    full_set_bonuses: Tuple[Property, ...] = ()


@dataclass(frozen=True)
class TxtSetItemBonus:
    slot: int
    property_a: Optional[Property]
    property_b: Optional[Property]


@dataclass(frozen=True)
class TxtSetItem:
    index: str
    id: int
    set_name: str
    item_code: str
    item_name: str
    level: int
    level_req: int
    properties: Tuple[Property, ...] = ()
    partial_bonuses: Tuple[TxtSetItemBonus, ...] = ()


@dataclass(frozen=True)
class TxtItemType:
    code: str
    type: str
    name: str


@dataclass(frozen=True)
class TxtItemTypeDef:
    code: str
    name: str
    equiv1: str = ""
    equiv2: str = ""
    store_page: str = ""


@dataclass(frozen=True)
class TxtSkill:
    skill: str
    char_class: str = ""


@dataclass(frozen=True)
class TxtMonster:
    hc_idx: int
    name: str


# ─── Shared helpers ─────────────────────────────────

def _cell(row: TsvRow, column: str) -> str:
    return row.get(column, "").strip()


def read_property(row: TsvRow, code_col: str, param_col: str,
                  min_col: str, max_col: str) -> Optional[Property]:
    """One property from four columns, or None when the code cell is empty."""
    code = _cell(row, code_col)
    if not code:
        return None
    return Property(
        code=code,
        param=_cell(row, param_col),
        min=parse_number(row.get(min_col)),
        max=parse_number(row.get(max_col)),
    )


def collect_item_properties(row: TsvRow, count: int,
                            excluded: AbstractSet[str] = frozenset()) -> Tuple[Property, ...]:
    """prop1..N / par1..N / min1..N / max1..N, skipping excluded codes."""
    props = []
    for i in range(1, count + 1):
        prop = read_property(row, f"prop{i}", f"par{i}", f"min{i}", f"max{i}")
        if prop is None or prop.code.lower() in excluded:
            continue
        props.append(prop)
    return tuple(props)


# ─── properties.txt / gems.txt ──────────────────────

def parse_properties_txt(content: str) -> List[PropertyDef]:
    return [
        PropertyDef(code=row["code"], tooltip=row["*Tooltip"], parameter=row.get("*Parameter", ""))
        for row in parse_tsv(content)
        if row.get("code") and row.get("*Tooltip")
    ]


def build_property_map(definitions: Iterable[PropertyDef]) -> Dict[str, PropertyDef]:
    return {d.code: d for d in definitions}


def _socketable_mods(row: TsvRow, slot: str) -> Tuple[Property, ...]:
    mods = []
    for i in range(1, SOCKETABLE_MOD_COUNT + 1):
        prefix = f"{slot}Mod{i}"
        mod = read_property(row, f"{prefix}Code", f"{prefix}Param", f"{prefix}Min", f"{prefix}Max")
        if mod is not None:
            mods.append(mod)
    return tuple(mods)


def parse_socketables_txt(content: str) -> List[TxtSocketable]:
    """gems.txt: gems and runes with their per-slot modifiers."""
    return [
        TxtSocketable(
            name=row["name"],
            code=row["code"],
            letter=row.get("letter", ""),
            **{f"{slot}_mods": _socketable_mods(row, slot) for slot in SOCKETABLE_MOD_SLOTS},
        )
        for row in parse_tsv(content)
        if row.get("name") and row.get("code")
    ]


def build_code_to_name_map(socketables: Iterable[TxtSocketable]) -> Dict[str, str]:
    return {s.code: s.name for s in socketables}


# ─── runes.txt ──────────────────────────────────────

def _rune_refs(row: TsvRow, code_to_name: Dict[str, str]) -> Tuple[TxtRuneRef, ...]:
    refs = []
    for i in range(1, RUNEWORD_RUNE_COUNT + 1):
        code = _cell(row, f"Rune{i}")
        if code:
            refs.append(TxtRuneRef(code=code, name=code_to_name.get(code, code)))
    return tuple(refs)


def parse_runewords_txt(content: str, code_to_name: Dict[str, str]) -> List[TxtRuneword]:
    """runes.txt: only complete runewords; rune codes resolve through code_to_name."""
    runewords = []
    for row in parse_tsv(content):
        if not row.get("Name") or not parse_boolean(row.get("complete")):
            continue
        props = [
            read_property(row, f"T1Code{i}", f"T1Param{i}", f"T1Min{i}", f"T1Max{i}")
            for i in range(1, RUNEWORD_PROPERTY_COUNT + 1)
        ]
        runewords.append(TxtRuneword(
            id=row["Name"],
            display_name=row.get("*Rune Name") or row["Name"],
            complete=True,
            item_types=tuple(collect_column_values(row, "itype", 6)),
            exclude_types=tuple(collect_column_values(row, "etype", 3)),
            runes=_rune_refs(row, code_to_name),
            properties=tuple(p for p in props if p is not None),
        ))
    return runewords


# ─── uniqueitems.txt / sets.txt / setitems.txt ──────

def parse_unique_items_txt(
    content: str,
    coupon_items: Optional[AbstractSet[str]] = None,
    translator: Optional[PropertyTranslator] = None,
) -> List[TxtUniqueItem]:
    """uniqueitems.txt; resolved_properties stays empty without a translator."""
    coupon_items = coupon_items or frozenset()
    items = []
    for row in parse_tsv(content):
        if not row.get("index") or not row.get("*ID"):
            continue
        if _cell(row, "code").lower() in EXCLUDED_UNIQUE_ITEM_CODES:
            continue

        props = collect_item_properties(row, UNIQUE_PROPERTY_COUNT, EXCLUDED_PROPERTY_CODES)
        resolved = tuple(t.text for t in translator.translate_all(props)) if translator else ()
        items.append(TxtUniqueItem(
            index=row["index"],
            id=parse_number(row["*ID"]),
            version=parse_number(row.get("version")),
            enabled=parse_boolean(row.get("enabled")),
            level=parse_number(row.get("lvl")),
            level_req=parse_number(row.get("lvl req")),
            item_code=row.get("code", ""),
            item_name=row.get("*ItemName", ""),
            properties=props,
            resolved_properties=resolved,
            is_ancient_coupon=row["index"] in coupon_items,
        ))
    logger.debug(f"TxtParsers: {len(items)} unique items")
    return items


def _set_partial_bonuses(row: TsvRow) -> Tuple[TxtPartialBonus, ...]:
    bonuses = []
    for count in SET_PARTIAL_ITEM_COUNTS:
        props = [
            read_property(row, f"PCode{count}{s}", f"PParam{count}{s}",
                          f"PMin{count}{s}", f"PMax{count}{s}")
            for s in ("a", "b")
        ]
        props = [p for p in props if p is not None]
        if props:
            bonuses.append(TxtPartialBonus(item_count=count, properties=tuple(props)))
    return tuple(bonuses)


def parse_sets_txt(content: str) -> List[TxtSet]:
    sets = []
    for row in parse_tsv(content):
        if not row.get("index") or not row.get("name"):
            continue
        full = [
            read_property(row, f"FCode{i}", f"FParam{i}", f"FMin{i}", f"FMax{i}")
            for i in range(1, SET_FULL_BONUS_COUNT + 1)
        ]
        sets.append(TxtSet(
            index=row["index"],
            name=row["name"],
            partial_bonuses=_set_partial_bonuses(row),
            full_set_bonuses=tuple(p for p in full if p is not None),
        ))
    return sets


def _set_item_bonuses(row: TsvRow) -> Tuple[TxtSetItemBonus, ...]:
    bonuses = []
    for slot in range(1, SET_ITEM_BONUS_SLOTS + 1):
        prop_a = read_property(row, f"aprop{slot}a", f"apar{slot}a", f"amin{slot}a", f"amax{slot}a")
        prop_b = read_property(row, f"aprop{slot}b", f"apar{slot}b", f"amin{slot}b", f"amax{slot}b")
        if prop_a is None and prop_b is None:
            continue
        bonuses.append(TxtSetItemBonus(slot=slot, property_a=prop_a, property_b=prop_b))
    return tuple(bonuses)


def parse_set_items_txt(content: str) -> List[TxtSetItem]:
    return [
        TxtSetItem(
            index=row["index"],
            id=parse_number(row["*ID"]),
            set_name=row.get("set", ""),
            item_code=row.get("item", ""),
            item_name=row.get("*item", ""),
            level=parse_number(row.get("lvl")),
            level_req=parse_number(row.get("lvl req")),
            properties=collect_item_properties(row, SET_ITEM_PROPERTY_COUNT),
            partial_bonuses=_set_item_bonuses(row),
        )
        for row in parse_tsv(content)
        if row.get("index") and row.get("*ID")
    ]


# ─── Item types ─────────────────────────────────────

def parse_item_types_txt(weapons: str, armor: str, misc: str) -> List[TxtItemType]:
    """Base item code → type code from weapons/armor/misc.txt; first code wins."""
    item_types: List[TxtItemType] = []
    seen: Set[str] = set()
    for content in (weapons, armor, misc):
        for row in parse_tsv(content):
            code = _cell(row, "code").lower()
            type_code = _cell(row, "type").lower()
            if not code or not type_code or code in seen:
                continue
            seen.add(code)
            item_types.append(TxtItemType(code=code, type=type_code, name=_cell(row, "name")))
    return item_types


def parse_item_type_defs_txt(content: str) -> List[TxtItemTypeDef]:
    """itemtypes.txt: type hierarchy (Equiv1/Equiv2) and store page."""
    defs = []
    for row in parse_tsv(content):
        code = _cell(row, "Code").lower()
        if code in SKIPPED_ITEM_TYPE_CODES:
            continue
        defs.append(TxtItemTypeDef(
            code=code,
            name=_cell(row, "ItemType"),
            equiv1=_cell(row, "Equiv1").lower(),
            equiv2=_cell(row, "Equiv2").lower(),
            store_page=_cell(row, "StorePage").lower(),
        ))
    return defs


# ─── cubemain.txt / skills.txt / monstats.txt ───────

def parse_ancient_coupon_items(content: str) -> Set[str]:
    """Unique item names produced by Coupon cube recipes (numeric outputs skipped)."""
    items = set()
    for row in parse_tsv(content):
        output = _cell(row, "output")
        if _cell(row, "description") == COUPON_DESCRIPTION and output and not _LEADING_DIGIT.match(output):
            items.add(output)
    return items


def parse_skills_txt(content: str) -> List[TxtSkill]:
    skills = []
    for row in parse_tsv(content):
        name = row.get("skill", "")
        if not name or name == "Expansion":
            continue
        char_class = row.get("charclass", "")
        skills.append(TxtSkill(skill=name,
                               char_class=char_class if char_class in VALID_CHAR_CLASSES else ""))
    return skills


def build_skill_class_map(skills: Iterable[TxtSkill]) -> Dict[str, str]:
    return {s.skill: s.char_class for s in skills if s.char_class}


def parse_monstats_txt(content: str) -> List[TxtMonster]:
    monsters = []
    for row in parse_tsv(content):
        if not row.get("*hcIdx") or not row.get("NameStr"):
            continue
        hc_idx = parse_number(row["*hcIdx"])
        if hc_idx > 0:
            monsters.append(TxtMonster(hc_idx=hc_idx, name=row["NameStr"]))
    return monsters


def build_monster_name_map(monsters: Iterable[TxtMonster]) -> Dict[int, str]:
    return {m.hc_idx: m.name for m in monsters}
