"""
SyncEngine — facade for the Runeforge refresh pipeline.

Single entry point wrapping SourceFetcher, the document parsers and
RecordStore. Consumers pass a SyncConfig; the engine fetches, parses,
derives and stores, and serves the stored records back.

Usage:
    from core import SyncEngine
    from games.esr import create_esr_config

    engine = SyncEngine(create_esr_config())
    engine.refresh()
    runewords = engine.load_runewords()
    matches = filter_runewords(runewords, RunewordFilters(search_text="life"), engine.context())
"""

import dataclasses
import logging
import time
from typing import Any, Dict, List, Optional

from core.sync_config import SyncConfig

logger = logging.getLogger(__name__)

DATA_VERSION_KEY = "data_version"
SYNCED_AT_KEY = "synced_at"
TXT_SYNCED_AT_KEY = "txt_synced_at"

SOCKETABLE_TABLES = ("gems", "crystals", "esr_runes", "lod_runes", "kanji_runes")
RUNEWORDS_TABLE = "runewords"


def _record(obj) -> Dict[str, Any]:
    """Plain-dict form of a frozen TXT record (tuples become lists)."""
    return dataclasses.asdict(obj)


class SyncEngine:
    """Fetch → parse → derive → store, plus typed reads of the stored data."""

    def __init__(self, config: SyncConfig, fetcher=None, store=None):
        from record_store import RecordStore
        from source_fetcher import SourceFetcher

        self.config = config
        self.fetcher = fetcher or SourceFetcher(
            cache_dir=config.source_cache_dir,
            ttl=config.source_cache_ttl,
            timeout=config.http_timeout,
        )
        self.store = store or RecordStore(config.store_dir)
        self._context = None

    @property
    def data_version(self) -> Optional[str]:
        return self.store.get_meta(DATA_VERSION_KEY)

    # ── Refresh ─────────────────────────────────────────────

    def refresh(self, force: bool = False) -> bool:
        """Refresh socketables and runewords. Returns True when the store is current.

        Skips the download when the changelog version matches the stored
        one, unless force is set.
        """
        from data_context import DataContext
        from record_store import runeword_key
        from runeword_parser import parse_runewords_html
        from socketable_parser import parse_socketables_html
        from source_fetcher import is_version_different

        try:
            start = time.time()
            remote = self.fetcher.fetch_latest_version(self.config.changelog_url)
            stored = self.data_version
            if not force and not is_version_different(stored, remote.version):
                logger.info(f"SyncEngine: data is current (version {stored})")
                return True
            logger.info(f"SyncEngine: refreshing {self.config.mod_id} data "
                        f"({stored or 'none'} → {remote.version})")

            gems_html = self.fetcher.fetch_text(self.config.gems_url, "gems.htm", force=force)
            runewords_html = self.fetcher.fetch_text(self.config.runewords_url, "runewords.htm", force=force)

            parsed = parse_socketables_html(gems_html)
            context = DataContext.from_socketables(parsed)
            runewords = parse_runewords_html(runewords_html, context.lookups)

            for table in SOCKETABLE_TABLES:
                records = getattr(parsed, table)
                self.store.clear(table)
                self.store.bulk_put(table, ((r.name, r.to_dict()) for r in records))
            self.store.clear(RUNEWORDS_TABLE)
            self.store.bulk_put(RUNEWORDS_TABLE, (
                (runeword_key(rw.name, rw.variant), rw.to_dict()) for rw in runewords
            ))

            self.store.set_meta(DATA_VERSION_KEY, remote.version)
            self.store.set_meta(SYNCED_AT_KEY, str(int(time.time())))
            self._context = context
            logger.info(f"SyncEngine: stored {parsed.total} socketables and "
                        f"{len(runewords)} runewords in {time.time() - start:.1f}s")
            return True
        except Exception as e:
            logger.error(f"SyncEngine refresh failed: {e}", exc_info=True)
            return False

    def refresh_txt(self, force: bool = False) -> bool:
        """Refresh the game-table data (unique items, sets, item types, ...)."""
        import txt_parsers as txt
        from property_translator import PropertyTranslator

        try:
            tables = {
                role: self.fetcher.fetch_text(self.config.txt_url(role), f"txt_{name}", force=force)
                for role, name in self.config.txt_files.items()
            }

            skills = txt.parse_skills_txt(tables["skills"])
            monsters = txt.parse_monstats_txt(tables["monstats"])
            translator = PropertyTranslator(
                txt.parse_properties_txt(tables["properties"]),
                skills=skills,
                monsters=txt.build_monster_name_map(monsters),
            )
            coupons = txt.parse_ancient_coupon_items(tables["cubemain"])
            code_to_name = txt.build_code_to_name_map(txt.parse_socketables_txt(tables["gems"]))

            uniques = txt.parse_unique_items_txt(tables["unique_items"], coupons, translator)
            sets = txt.parse_sets_txt(tables["sets"])
            set_items = txt.parse_set_items_txt(tables["set_items"])
            item_types = txt.parse_item_types_txt(tables["weapons"], tables["armor"], tables["misc"])
            type_defs = txt.parse_item_type_defs_txt(tables["item_types"])
            txt_runewords = txt.parse_runewords_txt(tables["runes"], code_to_name)

            self._replace("unique_items", ((str(u.id), _record(u)) for u in uniques))
            self._replace("sets", ((s.index, _record(s)) for s in sets))
            self._replace("set_items", ((str(s.id), _record(s)) for s in set_items))
            self._replace("item_types", ((t.code, _record(t)) for t in item_types))
            self._replace("item_type_defs", ((d.code, _record(d)) for d in type_defs))
            self._replace("txt_runewords", ((r.id, _record(r)) for r in txt_runewords))

            self.store.set_meta(TXT_SYNCED_AT_KEY, str(int(time.time())))
            logger.info(f"SyncEngine: stored {len(uniques)} unique items, {len(sets)} sets, "
                        f"{len(set_items)} set items, {len(txt_runewords)} table runewords")
            return True
        except Exception as e:
            logger.error(f"SyncEngine TXT refresh failed: {e}", exc_info=True)
            return False

    def _replace(self, table: str, items):
        self.store.clear(table)
        self.store.bulk_put(table, items)

    # ── Reads ───────────────────────────────────────────────

    def load_socketables(self):
        """ParsedSocketables rebuilt from the store."""
        from socketable_parser import Crystal, EsrRune, Gem, KanjiRune, LodRune, ParsedSocketables

        return ParsedSocketables(
            gems=tuple(Gem.from_dict(r) for r in self.store.all("gems")),
            crystals=tuple(Crystal.from_dict(r) for r in self.store.all("crystals")),
            esr_runes=tuple(sorted(
                (EsrRune.from_dict(r) for r in self.store.all("esr_runes")), key=lambda r: r.order)),
            lod_runes=tuple(sorted(
                (LodRune.from_dict(r) for r in self.store.all("lod_runes")), key=lambda r: r.order)),
            kanji_runes=tuple(KanjiRune.from_dict(r) for r in self.store.all("kanji_runes")),
        )

    def load_runewords(self) -> List:
        """Stored runewords ordered by sort key (ESR/Kanji by level, then LoD by level)."""
        from runeword_parser import Runeword

        runewords = [Runeword.from_dict(r) for r in self.store.all(RUNEWORDS_TABLE)]
        runewords.sort(key=lambda rw: (rw.sort_key, rw.name, rw.variant))
        return runewords

    def context(self):
        """DataContext for the stored runes, built on first use after each refresh."""
        from data_context import DataContext

        if self._context is None:
            self._context = DataContext.from_socketables(self.load_socketables())
        return self._context

    def load_unique_items(self) -> List:
        from property_translator import Property
        from txt_parsers import TxtUniqueItem

        items = []
        for r in self.store.all("unique_items"):
            values = dict(r)
            values["properties"] = tuple(Property(**p) for p in r.get("properties", []))
            values["resolved_properties"] = tuple(r.get("resolved_properties", []))
            items.append(TxtUniqueItem(**values))
        return items

    def item_type_context(self):
        from txt_parsers import TxtItemType, TxtItemTypeDef
        from unique_items import ItemTypeContext

        return ItemTypeContext.from_tables(
            (TxtItemType(**r) for r in self.store.all("item_types")),
            (TxtItemTypeDef(**r) for r in self.store.all("item_type_defs")),
        )
