"""
Runeforge - Unique Items
Item-type resolution, filter-group consolidation and filtering for the
unique items parsed from uniqueitems.txt.

Type resolution goes base item code → type code (weapons/armor/misc.txt)
→ type definition (itemtypes.txt). The lookup tables live in an explicit
ItemTypeContext built once per refresh.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from filter_engine import parse_search_terms
from txt_parsers import TxtItemType, TxtItemTypeDef, TxtUniqueItem

logger = logging.getLogger(__name__)


class ItemGroup(str, Enum):
    WEAPONS = "weapons"
    ARMORS = "armors"
    OTHER = "other"
    MYTHICAL = "mythical"


GROUP_LABELS: Dict[ItemGroup, str] = {
    ItemGroup.WEAPONS: "Weapons",
    ItemGroup.ARMORS: "Armors",
    ItemGroup.OTHER: "Other",
    ItemGroup.MYTHICAL: "Mythical",
}

# Throwing weapons sit on the misc store page but filter as weapons
WEAPON_TYPE_OVERRIDES = frozenset({"tkni", "taxe", "jave", "ajav", "bjav"})

STORE_PAGE_GROUPS: Dict[str, ItemGroup] = {
    "weap": ItemGroup.WEAPONS,
    "armo": ItemGroup.ARMORS,
    "misc": ItemGroup.OTHER,
}

MYTHICAL_PREFIX = "mythical"
MYTHICAL_TYPE_CODE = "mythical"
UNKNOWN_TYPE_CODE = "unknown"
ALL_TYPES = "__all__"


@dataclass(frozen=True)
class ItemTypeInfo:
    group: ItemGroup
    type_code: str
    label: str


@dataclass
class ItemTypeContext:
    """Per-refresh lookup tables for item-type resolution."""
    code_to_type: Dict[str, str] = field(default_factory=dict)
    type_defs: Dict[str, TxtItemTypeDef] = field(default_factory=dict)

    @classmethod
    def from_tables(cls, item_types: Iterable[TxtItemType],
                    type_defs: Iterable[TxtItemTypeDef]) -> "ItemTypeContext":
        return cls(
            code_to_type={t.code.lower(): t.type.lower() for t in item_types},
            type_defs={d.code.lower(): d for d in type_defs},
        )


def store_page_group(store_page: str, type_code: str = "") -> Optional[ItemGroup]:
    """Group for a store page; None for abstract types without one."""
    if type_code in WEAPON_TYPE_OVERRIDES:
        return ItemGroup.WEAPONS
    return STORE_PAGE_GROUPS.get(store_page)


def is_mythical(item_name: str) -> bool:
    return item_name.lower().startswith(MYTHICAL_PREFIX)


def get_item_type_from_code(item_code: str, item_name: str, context: ItemTypeContext) -> ItemTypeInfo:
    if is_mythical(item_name):
        return ItemTypeInfo(ItemGroup.MYTHICAL, MYTHICAL_TYPE_CODE, GROUP_LABELS[ItemGroup.MYTHICAL])

    code = item_code.lower()
    for type_code in (context.code_to_type.get(code), code):
        type_def = context.type_defs.get(type_code) if type_code else None
        if type_def is not None:
            group = store_page_group(type_def.store_page, type_code) or ItemGroup.OTHER
            return ItemTypeInfo(group, type_code, type_def.name)

    return ItemTypeInfo(ItemGroup.OTHER, UNKNOWN_TYPE_CODE, "Unknown")


# ─── Filter groups ──────────────────────────────────

@dataclass(frozen=True)
class FilterItemType:
    code: str
    label: str
    child_codes: Tuple[str, ...]     # every type code this entry selects


@dataclass(frozen=True)
class FilterGroup:
    id: ItemGroup
    label: str
    item_types: Tuple[FilterItemType, ...] = ()


def find_consolidation_parent(type_code: str, context: ItemTypeContext,
                              used_codes: Set[str]) -> Optional[str]:
    """Nearest Equiv1 ancestor that is concrete (has a store page) and not used directly."""
    type_def = context.type_defs.get(type_code)
    if type_def is None or not type_def.equiv1:
        return None
    parent = context.type_defs.get(type_def.equiv1)
    if parent is None:
        return None
    if parent.store_page and type_def.equiv1 not in used_codes:
        return type_def.equiv1
    return find_consolidation_parent(type_def.equiv1, context, used_codes)


def build_filter_groups(items: Iterable[TxtUniqueItem], context: ItemTypeContext) -> List[FilterGroup]:
    """Weapons/Armors/Other facet groups for the enabled items, plus Mythical when present."""
    used_codes: Set[str] = set()
    has_mythical = False
    for item in items:
        if not item.enabled:
            continue
        if is_mythical(item.item_name):
            has_mythical = True
            continue
        type_code = context.code_to_type.get(item.item_code.lower())
        if type_code:
            used_codes.add(type_code)

    # consolidated code → child codes, insertion ordered
    consolidated: Dict[str, List[str]] = {}
    for type_code in sorted(used_codes):
        parent = find_consolidation_parent(type_code, context, used_codes)
        if parent is not None:
            consolidated.setdefault(parent, []).append(type_code)
            continue

        type_def = context.type_defs.get(type_code)
        if type_def is None:
            continue
        same_name = next(
            (code for code in consolidated
             if code in context.type_defs and context.type_defs[code].name == type_def.name),
            None,
        )
        if same_name is not None:
            consolidated[same_name].append(type_code)
        else:
            consolidated[type_code] = [type_code]

    grouped: Dict[ItemGroup, List[FilterItemType]] = {
        ItemGroup.WEAPONS: [], ItemGroup.ARMORS: [], ItemGroup.OTHER: [],
    }
    for code, children in consolidated.items():
        type_def = context.type_defs.get(code)
        if type_def is None or not type_def.store_page:
            continue
        group = store_page_group(type_def.store_page, code)
        if group in grouped:
            grouped[group].append(FilterItemType(code, type_def.name, tuple(children)))

    groups = [
        FilterGroup(group, GROUP_LABELS[group], tuple(sorted(entries, key=lambda e: e.label.lower())))
        for group, entries in grouped.items()
    ]
    if has_mythical:
        groups.append(FilterGroup(
            ItemGroup.MYTHICAL, GROUP_LABELS[ItemGroup.MYTHICAL],
            (FilterItemType(MYTHICAL_TYPE_CODE, GROUP_LABELS[ItemGroup.MYTHICAL], (MYTHICAL_TYPE_CODE,)),),
        ))
    return groups


def all_type_codes(groups: Iterable[FilterGroup]) -> List[str]:
    return [code for group in groups for entry in group.item_types for code in entry.child_codes]


def type_codes_for_group(groups: Iterable[FilterGroup], group_id: ItemGroup) -> List[str]:
    return all_type_codes(g for g in groups if g.id == group_id)


# ─── Filtering ──────────────────────────────────────

@dataclass
class UniqueItemFilters:
    search_text: str = ""
    max_req_level: Optional[int] = None
    type_codes: FrozenSet[str] = frozenset()      # empty or ALL_TYPES selects everything
    include_coupon_items: bool = True


@dataclass(frozen=True)
class DisplayUniqueItem:
    item: TxtUniqueItem
    type_info: ItemTypeInfo

    @property
    def searchable_text(self) -> str:
        props = " ".join(self.item.resolved_properties)
        return f"{self.item.index} {self.item.item_name} {props}".lower()


def _matches_type_code(type_code: str, selected: FrozenSet[str]) -> bool:
    if not selected or ALL_TYPES in selected:
        return True
    return type_code in selected


def filter_unique_items(
    items: Iterable[TxtUniqueItem],
    filters: UniqueItemFilters,
    context: ItemTypeContext,
) -> List[DisplayUniqueItem]:
    """Enabled items passing every filter, by required level then index."""
    terms = parse_search_terms(filters.search_text)
    results = []
    for item in items:
        if not item.enabled:
            continue
        if item.is_ancient_coupon and not filters.include_coupon_items:
            continue
        if filters.max_req_level is not None and item.level_req > filters.max_req_level:
            continue

        display = DisplayUniqueItem(item, get_item_type_from_code(item.item_code, item.item_name, context))
        if not _matches_type_code(display.type_info.type_code, filters.type_codes):
            continue
        if terms:
            text = display.searchable_text
            if not all(term in text for term in terms):
                continue
        results.append(display)

    results.sort(key=lambda d: (d.item.level_req, d.item.index.lower(), d.item.index))
    return results
