"""Tests for column_expansion: per-category split of runewords with differing columns."""

from affix_parser import SocketableBonuses, build_affixes
from column_expansion import expand_runeword_by_column, expand_runewords_by_column
from runeword_parser import Runeword


def test_machine_splits_into_weapon_and_charm(runeword_named):
    sword, charm = expand_runeword_by_column(runeword_named("Machine"))
    assert sword.allowed_items == ("Sword",)
    assert [a.raw_text for a in sword.affixes] == ["+40% Enhanced Damage"]
    assert charm.allowed_items == ("Charm",)
    assert [a.raw_text for a in charm.affixes] == ["+5 to Dexterity"]
    # identity and derived fields carry over
    assert sword.key == charm.key == ("Machine", 1)
    assert sword.req_level == charm.req_level == 69


def test_single_category_is_unchanged(runeword_named):
    stone = runeword_named("Stone")
    assert expand_runeword_by_column(stone) == [stone]


def test_identical_columns_are_not_split():
    same = build_affixes(["+20% Faster Cast Rate"])
    rw = Runeword(
        "Echo", 1, 2, ("I Rune", "U Rune"),
        allowed_items=("Sword", "Helm"),
        affixes=same,
        column_affixes=SocketableBonuses(weapons_gloves=same, helms_boots=same),
    )
    assert expand_runeword_by_column(rw) == [rw]


def test_excluded_items_follow_their_category():
    rw = Runeword(
        "Split", 1, 2, ("I Rune",),
        allowed_items=("Weapon", "Staff"),
        excluded_items=("Orb", "Claw"),
        column_affixes=SocketableBonuses(
            weapons_gloves=build_affixes(["+1 to Strength"]),
            helms_boots=build_affixes(["+1 to Energy"]),
        ),
    )
    weapon, staff = expand_runeword_by_column(rw)
    assert weapon.excluded_items == ("Claw",)
    assert staff.excluded_items == ("Orb",)


def test_expand_list_keeps_order(runewords):
    expanded = expand_runewords_by_column(runewords)
    assert [(rw.name, rw.allowed_items) for rw in expanded] == [
        ("Stone", ("Body Armor",)),
        ("Boar", ("Weapon",)),
        ("Machine", ("Sword",)),
        ("Machine", ("Charm",)),
        ("Call to Arms", ("Weapon",)),
        ("Call to Arms", ("Weapon",)),
    ]
