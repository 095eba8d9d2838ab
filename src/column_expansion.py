"""
Runeforge - Column Expansion
Splits runewords whose bonuses differ between their item categories into one
display record per category (e.g. Machine: a Weapon entry and a Charm entry).
"""

import dataclasses
import logging
from typing import Iterable, List

from item_categories import get_item_category, get_relevant_categories
from runeword_parser import Runeword

logger = logging.getLogger(__name__)


def _raw_texts(runeword: Runeword, category) -> List[str]:
    return [a.raw_text for a in runeword.column_affixes.for_category(category)]


def expand_runeword_by_column(runeword: Runeword) -> List[Runeword]:
    """[runeword] itself when the columns agree, else one record per relevant category."""
    categories = get_relevant_categories(runeword.allowed_items)
    if len(categories) <= 1:
        return [runeword]

    first = _raw_texts(runeword, categories[0])
    if all(_raw_texts(runeword, category) == first for category in categories[1:]):
        return [runeword]

    return [
        dataclasses.replace(
            runeword,
            allowed_items=tuple(i for i in runeword.allowed_items if get_item_category(i) == category),
            excluded_items=tuple(i for i in runeword.excluded_items if get_item_category(i) == category),
            affixes=runeword.column_affixes.for_category(category),
        )
        for category in categories
    ]


def expand_runewords_by_column(runewords: Iterable[Runeword]) -> List[Runeword]:
    expanded = []
    split = 0
    for runeword in runewords:
        entries = expand_runeword_by_column(runeword)
        if len(entries) > 1:
            split += 1
        expanded.extend(entries)
    if split:
        logger.debug(f"ColumnExpansion: split {split} runewords into {len(expanded)} entries")
    return expanded
