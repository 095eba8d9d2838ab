"""
Runeforge - Item Categories
Maps runeword item-type names onto the three bonus columns of the source
documents and groups item types for the item-type facet.

Bonus columns (runewords.htm headers):
    Col 4: "Weapons / Gloves"
    Col 5: "Helms / Boots / Staves / Orbs / Wands" (also used by Charms)
    Col 6: "Armor / Shields / Belts"
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


class BonusCategory(str, Enum):
    WEAPONS_GLOVES = "weapons_gloves"
    HELMS_BOOTS = "helms_boots"
    ARMOR_SHIELDS_BELTS = "armor_shields_belts"


# Fixed column order; every "in order" iteration over categories uses it
BONUS_CATEGORY_ORDER: Tuple[BonusCategory, ...] = (
    BonusCategory.WEAPONS_GLOVES,
    BonusCategory.HELMS_BOOTS,
    BonusCategory.ARMOR_SHIELDS_BELTS,
)

# Case-insensitive substring keywords; first matching category wins
CATEGORY_KEYWORDS: Dict[BonusCategory, Tuple[str, ...]] = {
    BonusCategory.WEAPONS_GLOVES: (
        "weapon", "glove", "missile", "hammer", "polearm", "spear", "katana",
        "blade", "sword", "axe", "mace", "claw", "dagger", "bow", "crossbow",
        "javelin", "scepter", "club", "knife", "shuriken", "blunt",
        "hand to hand",
    ),
    BonusCategory.HELMS_BOOTS: (
        "helm", "boot", "circlet", "cap", "mask", "crown", "staff", "orb",
        "wand", "charm", "pelt",
    ),
    BonusCategory.ARMOR_SHIELDS_BELTS: (
        "armor", "shield", "belt", "plate", "paladin item",
    ),
}

CATEGORY_LABELS: Dict[BonusCategory, str] = {
    BonusCategory.WEAPONS_GLOVES: "Weapons/Gloves",
    BonusCategory.HELMS_BOOTS: "Helms/Boots/Staves/Orbs/Wands",
    BonusCategory.ARMOR_SHIELDS_BELTS: "Armor/Shields/Belts",
}


def get_item_category(item_type: str) -> Optional[BonusCategory]:
    lowered = item_type.lower()
    for category in BONUS_CATEGORY_ORDER:
        if any(keyword in lowered for keyword in CATEGORY_KEYWORDS[category]):
            return category
    return None


def get_relevant_categories(allowed_items: Iterable[str]) -> List[BonusCategory]:
    """Distinct categories of the allowed items, in column order."""
    found = {get_item_category(item) for item in allowed_items}
    return [category for category in BONUS_CATEGORY_ORDER if category in found]


def get_category_label(allowed_items: Sequence[str], category: BonusCategory) -> str:
    """Label built from the items that map to the category, e.g. "Weapon".

    Falls back to the generic column label when none match.
    """
    matching = [item for item in allowed_items if get_item_category(item) == category]
    return "/".join(matching) if matching else CATEGORY_LABELS[category]


# ─── Item-type facet grouping ───────────────────────

ITEM_TYPE_CATEGORIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Weapons", (
        "2H Swing Weapon", "Axe", "Blunt", "Club", "Hammer", "Hand to Hand",
        "Knife", "Mace", "Melee Weapon", "Polearm", "Scepter", "Spear",
        "Staff", "Sword", "Wand", "Weapon",
    )),
    ("Missile", ("Crossbow", "Missile", "Missile Weapon")),
    ("Armor", (
        "Any Armor", "Any Shield", "Belt", "Body Armor", "Boots", "Gloves",
        "Helm",
    )),
    ("Class-Specific", (
        "Assassin 2H Katana", "Orb", "Paladin Item", "Paladin Sword", "Pelt",
        "Shuriken", "Sorceress Mana Blade",
    )),
    ("Other", ("Charm",)),
)

UNCATEGORIZED_GROUP_LABEL = "New"

KNOWN_ITEM_TYPES = frozenset(t for _, types in ITEM_TYPE_CATEGORIES for t in types)


def group_item_types_by_category(available_types: Sequence[str]) -> List[Tuple[str, List[str]]]:
    """Group available item types into labelled facet groups.

    Types not listed in ITEM_TYPE_CATEGORIES end up in a trailing "New"
    group so new item types still show up.
    """
    available = set(available_types)
    groups = []
    for label, item_types in ITEM_TYPE_CATEGORIES:
        matching = [t for t in item_types if t in available]
        if matching:
            groups.append((label, matching))

    uncategorized = [t for t in available_types if t not in KNOWN_ITEM_TYPES]
    if uncategorized:
        groups.append((UNCATEGORIZED_GROUP_LABEL, uncategorized))
    return groups


def available_item_types(runewords: Iterable) -> List[str]:
    """Sorted distinct allowed item types across all runewords."""
    return sorted({item for rw in runewords for item in rw.allowed_items})
