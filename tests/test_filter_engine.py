"""Tests for filter_engine.py — search, facet predicates, rune maps, socketable listing."""

import pytest

from affix_parser import build_affixes
from derived_fields import TierPointTotal
from filter_engine import (
    CATEGORY_STRIDE,
    RunewordFilters,
    SocketableCategory,
    build_rune_bonus_map,
    build_rune_category_map,
    build_rune_groups,
    build_unified_socketables,
    facet_params,
    filter_runewords,
    filter_socketables,
    matches_max_req_level,
    matches_runes,
    matches_search,
    matches_tier_points,
    parse_search_terms,
    rune_bonuses_text,
    select_all_runes,
)
from runeword_parser import Runeword
from socketable_parser import RuneCategory


def _names(runewords):
    return [(rw.name, rw.variant) for rw in runewords]


def _filter(runewords, data_context, **kwargs):
    return _names(filter_runewords(runewords, RunewordFilters(**kwargs), data_context))


# ── Search terms ─────────────────────────────────────────

@pytest.mark.parametrize("text,terms", [
    ("Fire Damage",              ["fire", "damage"]),
    ('"life stolen" mana',       ["life stolen", "mana"]),
    ('  "All Skills"  ',         ["all skills"]),
    ("",                         []),
])
def test_parse_search_terms(text, terms):
    assert parse_search_terms(text) == terms


# ── Runeword search ──────────────────────────────────────

def test_empty_filters_keep_everything_in_order(runewords, data_context):
    assert _filter(runewords, data_context) == _names(runewords)


def test_search_by_name(runewords, data_context):
    assert _filter(runewords, data_context, search_text="boar") == [("Boar", 1)]


def test_search_includes_rune_bonuses_for_item_category(runewords, data_context):
    """I Rune's weapon bonus is searchable on weapons, its armor bonus on armor."""
    assert _filter(runewords, data_context, search_text="cold") == [("Boar", 1), ("Call to Arms", 2)]
    assert _filter(runewords, data_context, search_text="mana") == [("Stone", 1)]


def test_rune_bonus_text_only_from_relevant_columns(runeword_named, data_context):
    text = rune_bonuses_text(runeword_named("Boar"), data_context.rune_bonuses)
    assert text == "Adds 1-3 Cold Damage"


def test_rune_bonus_text_follows_runeword_family(data_context):
    """El is LoD-only, so Ko contributes its LoD bonuses here."""
    melody = Runeword("Melody", 1, 2, ("El Rune", "Ko Rune"), allowed_items=("Sword",))
    text = rune_bonuses_text(melody, data_context.rune_bonuses, data_context.rune_categories)
    assert "+10 to Dexterity" in text
    assert "Increased Attack Speed" not in text


def test_search_terms_are_anded():
    spirit = Runeword("Spirit", 1, 4, ("I Rune",), allowed_items=("Sword",),
                      affixes=build_affixes(["+2 to All Skills", "+25% Faster Cast Rate"]))
    assert matches_search(spirit, ["spirit"], {})
    assert matches_search(spirit, ["skills"], {})
    assert matches_search(spirit, ["spirit", "skills"], {})
    assert not matches_search(spirit, ["spirit", "damage"], {})


def test_quoted_phrase_search(runewords, data_context):
    both = [("Call to Arms", 1), ("Call to Arms", 2)]
    assert _filter(runewords, data_context, search_text='"all skills"') == both
    assert _filter(runewords, data_context, search_text='"skills all"') == []
    assert _filter(runewords, data_context, search_text="skills all") == both


# ── Facets ───────────────────────────────────────────────

def test_sockets_facet(runewords, data_context):
    assert _filter(runewords, data_context, sockets=2) == [("Stone", 1), ("Machine", 1), ("Call to Arms", 2)]


def test_max_level_facet(runewords, data_context):
    assert _filter(runewords, data_context, max_req_level=20) == [("Stone", 1), ("Boar", 1)]


def test_max_level_passes_records_without_level():
    class Legacy:
        pass
    assert matches_max_req_level(Legacy(), 10)


def test_item_type_facet(runewords, data_context):
    assert _filter(runewords, data_context, item_types={"Sword": True}) == [("Machine", 1)]
    assert _filter(runewords, data_context, item_types={"Weapon": True, "Sword": False}) == [
        ("Boar", 1), ("Call to Arms", 1), ("Call to Arms", 2),
    ]


def test_rune_facet(runewords, data_context, socketables):
    groups = build_rune_groups(socketables.esr_runes, socketables.lod_runes, socketables.kanji_runes)
    selected = select_all_runes(groups, selected=False)
    selected.update({"esr:I Rune": True, "esr:Shi Rune": True})
    assert _filter(runewords, data_context, runes=selected) == [("Stone", 1), ("Boar", 1)]


def test_rune_facet_shared_name_either_family(data_context):
    """Ko Rune passes when selected in either of its families."""
    rw = Runeword("Test", 1, 3, ("Ki Rune", "Ko Rune"))
    selected = {"esr:Ki Rune": True, "esr:Ko Rune": False, "lod:Ko Rune": True}
    assert matches_runes(rw, selected, data_context.rune_categories)
    selected["lod:Ko Rune"] = False
    assert not matches_runes(rw, selected, data_context.rune_categories)


def test_rune_facet_unknown_rune_fails(data_context):
    rw = Runeword("Test", 1, 1, ("Mystery Rune",))
    assert not matches_runes(rw, {"esr:I Rune": True}, data_context.rune_categories)


def test_tier_point_facet(runewords, data_context):
    assert ("Stone", 1) not in _filter(runewords, data_context, max_tier_points={"esr:1": 4})
    assert _filter(runewords, data_context, max_tier_points={"esr:1": 4}) == [
        ("Boar", 1), ("Machine", 1), ("Call to Arms", 1), ("Call to Arms", 2),
    ]
    assert ("Machine", 1) not in _filter(runewords, data_context, max_tier_points={"lod:3": 1000})


def test_tier_point_ceiling_none_means_unbounded():
    rw = Runeword("Test", 1, 1, ("I Rune",), tier_point_totals=(TierPointTotal(RuneCategory.ESR, 1, 50),))
    assert matches_tier_points(rw, {"esr:1": None})
    assert not matches_tier_points(rw, {"esr:1": 49})
    assert matches_tier_points(rw, {"esr:2": 1})


def test_facets_combine_with_and(runewords, data_context):
    assert _filter(runewords, data_context, sockets=2, search_text="skills") == [("Call to Arms", 2)]


# ── Rune maps ────────────────────────────────────────────

def test_rune_category_map(socketables):
    categories = build_rune_category_map(socketables.esr_runes, socketables.lod_runes, socketables.kanji_runes)
    assert categories["Ko Rune"] == [RuneCategory.ESR, RuneCategory.LOD]
    assert categories["Tsuki Rune"] == [RuneCategory.KANJI]


def test_rune_bonus_map_prefers_esr(socketables):
    bonuses = build_rune_bonus_map(socketables.esr_runes, socketables.lod_runes, socketables.kanji_runes)
    assert bonuses["Ko Rune"].weapons_gloves[0].raw_text == "+25% Increased Attack Speed"
    assert bonuses["lod:Ko Rune"].weapons_gloves[0].raw_text == "+10 to Dexterity"
    assert bonuses["esr:Ko Rune"] is bonuses["Ko Rune"]


# ── Share-link params ────────────────────────────────────

def test_facet_params_omit_defaults():
    assert facet_params(RunewordFilters()) == {}
    assert facet_params(RunewordFilters(item_types={"Sword": True, "Helm": True})) == {}


def test_facet_params():
    filters = RunewordFilters(
        search_text='"life stolen"',
        sockets=3,
        max_req_level=40,
        item_types={"Sword": True, "Helm": False},
        runes={"esr:I Rune": True, "lod:El Rune": True, "lod:Zod Rune": False},
        max_tier_points={"esr:1": 12, "lod:2": None},
    )
    assert facet_params(filters) == {
        "search": '"life stolen"',
        "sockets": "3",
        "level": "40",
        "items": "Sword",
        "runes": "esr:I Rune,lod:El Rune",
        "points": "esr:1=12",
    }


# ── Unified socketables ──────────────────────────────────

def test_unified_socketables_order(socketables):
    unified = build_unified_socketables(socketables)
    assert [(u.name, u.category) for u in unified] == [
        ("Chipped Ruby", SocketableCategory.GEMS),
        ("Ruby", SocketableCategory.GEMS),
        ("I Rune", SocketableCategory.ESR_RUNES),
        ("Shi Rune", SocketableCategory.ESR_RUNES),
        ("Ki Rune", SocketableCategory.ESR_RUNES),
        ("Ko Rune", SocketableCategory.ESR_RUNES),
        ("El Rune", SocketableCategory.LOD_RUNES),
        ("Ko Rune", SocketableCategory.LOD_RUNES),
        ("Zod Rune", SocketableCategory.LOD_RUNES),
        ("Tsuki Rune", SocketableCategory.KANJI_RUNES),
        ("Chipped Shadow Quartz", SocketableCategory.CRYSTALS),
    ]
    orders = [u.sort_order for u in unified]
    assert orders == sorted(orders)
    assert unified[2].sort_order == CATEGORY_STRIDE
    assert unified[6].color is None
    assert unified[0].color == "RED"


def test_filter_socketables(socketables):
    unified = build_unified_socketables(socketables)
    assert len(filter_socketables(unified)) == len(unified)
    assert [u.name for u in filter_socketables(unified, [SocketableCategory.LOD_RUNES])] == [
        "El Rune", "Ko Rune", "Zod Rune",
    ]
    assert [u.name for u in filter_socketables(unified, search_text="FIRE")] == ["Chipped Ruby", "Ruby"]
    faster_cast = filter_socketables(unified, search_text="faster cast")
    assert [(u.name, u.category) for u in faster_cast] == [("Ko Rune", SocketableCategory.ESR_RUNES)]
    assert filter_socketables(unified, enabled_categories=[]) == []


# ── Rune groups ──────────────────────────────────────────

def test_rune_groups(socketables):
    groups = build_rune_groups(socketables.esr_runes, socketables.lod_runes, socketables.kanji_runes)
    assert [(g.label, g.runes) for g in groups] == [
        ("ESR Tier 1", ("I Rune", "Shi Rune")),
        ("ESR Tier 2", ("Ki Rune",)),
        ("ESR Tier 3", ("Ko Rune",)),
        ("LoD Low", ("El Rune",)),
        ("LoD Mid", ("Ko Rune",)),
        ("LoD High", ("Zod Rune",)),
        ("Kanji Runes", ("Tsuki Rune",)),
    ]
    assert groups[4].selection_keys() == ["lod:Ko Rune"]


def test_select_all_runes(socketables):
    groups = build_rune_groups(socketables.esr_runes, socketables.lod_runes, socketables.kanji_runes)
    selection = select_all_runes(groups)
    assert len(selection) == 8
    assert selection["esr:Ko Rune"] and selection["lod:Ko Rune"]
    assert not any(select_all_runes(groups, selected=False).values())
