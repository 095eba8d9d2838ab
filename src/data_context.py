"""
Runeforge - Data Context
Everything derived from the parsed runes once per refresh: the derived-field
lookups and the maps the filter engine consults. Rebuilt from scratch on
every refresh and passed explicitly; nothing here is cached at module level.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from derived_fields import RuneLookups, build_rune_lookups
from filter_engine import (
    RuneBonusMap,
    RuneCategoryMap,
    RunePriorityMap,
    build_rune_bonus_map,
    build_rune_category_map,
)
from socketable_parser import EsrRune, KanjiRune, LodRune, ParsedSocketables

logger = logging.getLogger(__name__)


@dataclass
class DataContext:
    lookups: RuneLookups = field(default_factory=RuneLookups)
    rune_categories: RuneCategoryMap = field(default_factory=dict)
    rune_bonuses: RuneBonusMap = field(default_factory=dict)

    @property
    def rune_priorities(self) -> RunePriorityMap:
        return self.lookups.priorities

    @classmethod
    def from_runes(
        cls,
        esr_runes: Iterable[EsrRune],
        lod_runes: Iterable[LodRune],
        kanji_runes: Iterable[KanjiRune],
    ) -> "DataContext":
        esr, lod, kanji = list(esr_runes), list(lod_runes), list(kanji_runes)
        context = cls(
            lookups=build_rune_lookups(esr, lod, kanji),
            rune_categories=build_rune_category_map(esr, lod, kanji),
            rune_bonuses=build_rune_bonus_map(esr, lod, kanji),
        )
        logger.debug(f"DataContext: built for {len(esr) + len(lod) + len(kanji)} runes")
        return context

    @classmethod
    def from_socketables(cls, parsed: ParsedSocketables) -> "DataContext":
        return cls.from_runes(parsed.esr_runes, parsed.lod_runes, parsed.kanji_runes)
