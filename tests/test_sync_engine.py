"""Tests for the SyncEngine facade against a fake fetcher and a temp store."""

import pytest

from core import SyncConfig, SyncEngine
from record_store import RecordStore
from socketable_parser import RuneCategory
from source_fetcher import ChangelogVersion, SourceFetchError


def _tsv(headers, *rows):
    return "\n".join(["\t".join(headers)] + ["\t".join(row) for row in rows]) + "\n"


def make_txt_tables():
    """Minimal game tables, keyed by SyncConfig.txt_files role."""
    item_headers = ["name", "code", "type"]
    return {
        "properties": _tsv(["code", "*Tooltip", "*Parameter"], ["str", "+# to Strength", ""]),
        "gems": _tsv(["name", "code", "letter"], ["El Rune", "r01", "El"]),
        "runes": _tsv(["Name", "*Rune Name", "complete", "itype1", "Rune1"],
                      ["Runeword1", "Steel", "1", "swor", "r01"]),
        "unique_items": _tsv(
            ["index", "*ID", "version", "enabled", "lvl", "lvl req", "code", "*ItemName",
             "prop1", "par1", "min1", "max1", "prop2", "par2", "min2", "max2"],
            ["The Gnasher", "0", "100", "1", "7", "5", "hax", "Hand Axe",
             "str", "", "8", "8", "skill", "Teleport", "1", "2"],
            ["Coupon Blade", "1", "100", "1", "60", "60", "lsd", "Long Sword",
             "str", "", "20", "20", "", "", "", ""],
        ),
        "sets": _tsv(["index", "name", "FCode1", "FParam1", "FMin1", "FMax1"],
                     ["Angelic Raiment", "Angelic Raiment", "str", "", "10", "10"]),
        "set_items": _tsv(["index", "*ID", "set", "item", "*item", "lvl", "lvl req"],
                          ["Angelic Halo", "0", "Angelic Raiment", "rin", "Ring", "17", "12"]),
        "weapons": _tsv(item_headers, ["Hand Axe", "hax", "axe"], ["Long Sword", "lsd", "swor"]),
        "armor": _tsv(item_headers),
        "misc": _tsv(item_headers, ["Ring", "rin", "ring"]),
        "item_types": _tsv(["ItemType", "Code", "Equiv1", "Equiv2", "StorePage"],
                           ["Axe", "axe", "mele", "", "weap"],
                           ["Sword", "swor", "mele", "", "weap"]),
        "cubemain": _tsv(["description", "output"], ["Coupon", "Coupon Blade"]),
        "skills": _tsv(["skill", "charclass"], ["Teleport", "sor"]),
        "monstats": _tsv(["Id", "*hcIdx", "NameStr"], ["zombie1", "8", "Zombie"]),
    }


# ── Fixtures ─────────────────────────────────────────────

class FakeFetcher:
    """Serves fixture documents by URL and counts document fetches."""

    def __init__(self, pages, version="3.9.09"):
        self.pages = pages
        self.version = version
        self.fetched = []

    def fetch_latest_version(self, url):
        return ChangelogVersion(self.version, f"Eastern Sun Resurrected {self.version} - 01/01/2026", "01/01/2026")

    def fetch_text(self, url, cache_name=None, force=False):
        self.fetched.append(url)
        if url not in self.pages:
            raise SourceFetchError(f"Failed to fetch {url}: 404")
        return self.pages[url]


@pytest.fixture
def config(tmp_path):
    return SyncConfig(
        mod_id="esr",
        cache_dir=tmp_path / "cache",
        gems_url="https://example.test/docs/gems.htm",
        runewords_url="https://example.test/docs/runewords.htm",
        changelog_url="https://example.test/docs/changelogs.html",
        txt_base_url="https://example.test/docs/txt",
        txt_files={
            "properties": "properties.txt", "gems": "gems.txt", "runes": "runes.txt",
            "unique_items": "uniqueitems.txt", "sets": "sets.txt", "set_items": "setitems.txt",
            "weapons": "weapons.txt", "armor": "armor.txt", "misc": "misc.txt",
            "item_types": "itemtypes.txt", "cubemain": "cubemain.txt",
            "skills": "skills.txt", "monstats": "monstats.txt",
        },
        store_dir=tmp_path / "store",
    )


@pytest.fixture
def fetcher(config, gems_html, runewords_html):
    return FakeFetcher({config.gems_url: gems_html, config.runewords_url: runewords_html})


@pytest.fixture
def engine(config, fetcher):
    return SyncEngine(config, fetcher=fetcher)


# ── refresh ──────────────────────────────────────────────

def test_refresh_stores_everything(engine, config):
    assert engine.data_version is None
    assert engine.refresh()
    assert engine.data_version == "3.9.09"

    store = RecordStore(config.store_dir)
    assert store.count("gems") == 2
    assert store.count("esr_runes") == 4
    assert store.count("lod_runes") == 3
    assert store.count("kanji_runes") == 1
    assert store.count("crystals") == 1
    assert store.count("runewords") == 5
    assert store.get("runewords", "Call to Arms#2")["req_level"] == 60
    assert store.get_meta("synced_at") is not None


def test_refresh_skips_when_version_unchanged(engine, fetcher):
    assert engine.refresh()
    fetched = len(fetcher.fetched)
    assert engine.refresh()
    assert len(fetcher.fetched) == fetched


def test_force_refresh_refetches(engine, fetcher):
    assert engine.refresh()
    fetched = len(fetcher.fetched)
    assert engine.refresh(force=True)
    assert len(fetcher.fetched) == fetched + 2


def test_new_version_triggers_refresh(engine, fetcher):
    assert engine.refresh()
    fetcher.version = "3.9.10"
    assert engine.refresh()
    assert engine.data_version == "3.9.10"


def test_refresh_failure_returns_false(config, caplog):
    engine = SyncEngine(config, fetcher=FakeFetcher({}))
    assert not engine.refresh()
    assert engine.data_version is None
    assert "SyncEngine refresh failed" in caplog.text


# ── Reads ────────────────────────────────────────────────

def test_load_socketables_round_trip(engine, socketables):
    engine.refresh()
    loaded = engine.load_socketables()
    assert loaded.esr_runes == socketables.esr_runes
    assert loaded.lod_runes == socketables.lod_runes
    assert loaded.kanji_runes == socketables.kanji_runes
    assert set(loaded.gems) == set(socketables.gems)


def test_load_runewords_sorted(engine):
    engine.refresh()
    assert [(rw.name, rw.variant, rw.sort_key) for rw in engine.load_runewords()] == [
        ("Boar", 1, 11),
        ("Stone", 1, 13),
        ("Call to Arms", 1, 31),
        ("Call to Arms", 2, 60),
        ("Machine", 1, 10069),
    ]


def test_context_rebuilt_from_store(config, fetcher):
    SyncEngine(config, fetcher=fetcher).refresh()
    fresh = SyncEngine(config, fetcher=fetcher)
    context = fresh.context()
    assert context.rune_categories["Ko Rune"] == [RuneCategory.ESR, RuneCategory.LOD]
    assert context.rune_priorities["lod:Ko Rune"] == 918
    assert fresh.context() is context


# ── refresh_txt ──────────────────────────────────────────

def test_refresh_txt(config, fetcher, engine):
    for role, text in make_txt_tables().items():
        fetcher.pages[config.txt_url(role)] = text

    assert engine.refresh_txt()
    items = {item.index: item for item in engine.load_unique_items()}
    assert set(items) == {"The Gnasher", "Coupon Blade"}
    assert items["The Gnasher"].resolved_properties == ("+8 to Strength", "+(1 to 2) to Teleport (Sorceress Only)")
    assert items["Coupon Blade"].is_ancient_coupon
    assert items["The Gnasher"].properties[0].code == "str"

    context = engine.item_type_context()
    assert context.code_to_type["hax"] == "axe"
    assert context.type_defs["axe"].store_page == "weap"

    store = RecordStore(config.store_dir)
    (txt_runeword,) = store.all("txt_runewords")
    assert txt_runeword["runes"] == [{"code": "r01", "name": "El Rune"}]
    assert store.count("sets") == 1


def test_refresh_txt_failure_returns_false(engine):
    assert not engine.refresh_txt()
