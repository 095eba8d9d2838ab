"""Tests for socketable_parser.py — classification, tiers, points, the Ko Rune collision."""

import pytest

from markup_extractor import NO_COLOR, ColorKind, FontColor
from socketable_parser import (
    KANJI_REQ_LEVEL,
    RUNE_SUFFIX,
    EsrRune,
    Gem,
    LodRune,
    RuneCategory,
    classify_crystal,
    classify_gem,
    extract_socketable_names,
    is_esr_rune,
    is_kanji_rune,
    is_lod_rune,
    lod_rune_order,
    lod_tier_for_order,
    normalize_rune_name,
    parse_gems_html,
    parse_kanji_runes_html,
    rune_key,
)

BLUE = FontColor.from_attribute("BLUE")
YELLOW = FontColor.from_attribute("YELLOW")


# ── Name helpers ─────────────────────────────────────────

@pytest.mark.parametrize("raw,expected", [
    ("I Rune (1 points)",   ("I Rune", 1)),
    ("Ka Rune (8 Points)",  ("Ka Rune", 8)),
    ("U Rune (2 point)",    ("U Rune", 2)),
    ("Ru Rune",             ("Ru Rune", None)),
    ("  Zod Rune  ",        ("Zod Rune", None)),
])
def test_normalize_rune_name(raw, expected):
    assert normalize_rune_name(raw) == expected


GEM_CASES = [
    ("Chipped Ruby",      ("Ruby", "Chipped")),
    ("Flawless Amethyst", ("Amethyst", "Flawless")),
    ("Perfect Skull",     ("Skull", "Perfect")),
    ("Blemished Obsidian", ("Obsidian", "Blemished")),
    ("Ruby",              ("Ruby", "Standard")),
    ("Cracked Ruby",      None),
]


@pytest.mark.parametrize("name,expected", GEM_CASES)
def test_classify_gem(name, expected):
    assert classify_gem(name) == expected


def test_classify_crystal():
    assert classify_crystal("Flawed Storm Amber") == ("Storm Amber", "Flawed")
    assert classify_crystal("Tomb Jade") == ("Tomb Jade", "Standard")
    assert classify_crystal("Perfect Tomb Jade") is None


@pytest.mark.parametrize("name,order,tier", [
    ("El Rune", 1, 1),
    ("Amn Rune", 11, 1),
    ("Sol Rune", 12, 2),
    ("Ko Rune", 18, 2),
    ("Um Rune", 22, 2),
    ("Mal Rune", 23, 3),
    ("Zod Rune", 33, 3),
])
def test_lod_order_and_tier(name, order, tier):
    assert lod_rune_order(name) == order
    assert lod_tier_for_order(order) == tier


def test_lod_unknown_name():
    assert lod_rune_order("Shi Rune") == 0
    assert lod_tier_for_order(0) == 0


def test_rune_family_predicates():
    """Kanji needs BLUE, ESR any other color, LoD no color and a canonical name."""
    assert is_kanji_rune("Tsuki Rune", BLUE)
    assert not is_esr_rune("Tsuki Rune", BLUE)
    assert is_esr_rune("Ko Rune", YELLOW)
    assert not is_lod_rune("Ko Rune", YELLOW)
    assert is_lod_rune("Ko Rune", NO_COLOR)
    assert not is_lod_rune("Shi Rune", NO_COLOR)
    assert not is_esr_rune("Ruby Rune", YELLOW)   # gem name
    assert not is_kanji_rune("Tsuki", BLUE)       # no suffix


def test_rune_key():
    assert rune_key(RuneCategory.ESR, "Ko Rune") == "esr:Ko Rune"
    assert rune_key(RuneCategory.LOD, "Ko Rune") == "lod:Ko Rune"


# ── Full document ────────────────────────────────────────

def test_gems(socketables):
    assert [g.name for g in socketables.gems] == ["Chipped Ruby", "Ruby"]
    chipped, standard = socketables.gems
    assert (chipped.type, chipped.quality, chipped.color, chipped.req_level) == ("Ruby", "Chipped", "RED", 1)
    assert standard.quality == "Standard"
    assert [a.raw_text for a in chipped.bonuses.weapons_gloves] == ["Adds 3-4 Fire Damage"]
    assert chipped.bonuses.armor_shields_belts[0].pattern == "#% Fire Resist"


def test_crystals(socketables):
    (crystal,) = socketables.crystals
    assert crystal.name == "Chipped Shadow Quartz"
    assert (crystal.type, crystal.quality, crystal.color) == ("Shadow Quartz", "Chipped", "PURPLE")


def test_esr_runes(socketables):
    esr = socketables.esr_runes
    assert [r.name for r in esr] == ["I Rune", "Shi Rune", "Ki Rune", "Ko Rune"]
    assert [r.order for r in esr] == [1, 2, 3, 4]
    assert [r.tier for r in esr] == [1, 1, 2, 3]
    assert esr[0].points == 1
    assert esr[1].points is None
    assert esr[3].req_level == 31


def test_lod_runes_sorted_by_order(socketables):
    lod = socketables.lod_runes
    assert [(r.name, r.order, r.tier) for r in lod] == [
        ("El Rune", 1, 1), ("Ko Rune", 18, 2), ("Zod Rune", 33, 3),
    ]
    assert [r.req_level for r in lod] == [11, 39, 69]


def test_kanji_runes_use_fixed_level(socketables):
    (kanji,) = socketables.kanji_runes
    assert kanji.name == "Tsuki Rune"
    assert kanji.req_level == KANJI_REQ_LEVEL == 60
    assert kanji.bonuses.helms_boots[0].raw_text == "+30% Magic Find"


def test_ko_rune_in_both_families(socketables):
    """Colored header → ESR, plain header → LoD; each keeps its own bonuses."""
    esr_ko = next(r for r in socketables.esr_runes if r.name == "Ko Rune")
    lod_ko = next(r for r in socketables.lod_runes if r.name == "Ko Rune")
    assert esr_ko.color == "YELLOW"
    assert esr_ko.bonuses.weapons_gloves[0].raw_text == "+25% Increased Attack Speed"
    assert lod_ko.bonuses.weapons_gloves[0].raw_text == "+10 to Dexterity"


def test_classifier_partition(socketables, gems_html):
    """Every rune name lands in exactly one family, except Ko Rune which is in two."""
    families = {}
    for family in ("esr_runes", "lod_runes", "kanji_runes"):
        for rune in getattr(socketables, family):
            families.setdefault(rune.name, []).append(family)
    shared = {name for name, found in families.items() if len(found) > 1}
    assert shared == {"Ko Rune"}
    assert socketables.total == 2 + 1 + 4 + 3 + 1


def test_all_rune_names_end_in_suffix(socketables):
    for family in (socketables.esr_runes, socketables.lod_runes, socketables.kanji_runes):
        assert all(r.name.endswith(RUNE_SUFFIX) for r in family)


def test_unclassified_headers_are_skipped(gems_html):
    names = [n.name for n in extract_socketable_names(gems_html)]
    assert "Mystery Stone" in names
    assert "Cracked Ruby" in names
    assert all(g.name != "Cracked Ruby" for g in parse_gems_html(gems_html))


def test_family_shortcuts(gems_html):
    assert [r.name for r in parse_kanji_runes_html(gems_html)] == ["Tsuki Rune"]


def test_empty_document():
    assert parse_gems_html("") == []


# ── Serialization ────────────────────────────────────────

def test_records_round_trip_through_dicts(socketables):
    esr = socketables.esr_runes[0]
    assert EsrRune.from_dict(esr.to_dict()) == esr
    lod = socketables.lod_runes[1]
    assert LodRune.from_dict(lod.to_dict()) == lod
    gem = socketables.gems[0]
    data = gem.to_dict()
    assert data["bonuses"]["weapons_gloves"][0]["value"] == [3, 4]
    assert Gem.from_dict(data) == gem


def test_name_color_listing(gems_html):
    names = extract_socketable_names(gems_html)
    tsuki = next(n for n in names if n.name == "Tsuki Rune")
    assert tsuki.is_rune
    assert tsuki.color.kind == ColorKind.BLUE
