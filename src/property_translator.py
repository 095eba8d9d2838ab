"""
Runeforge - Property Translator
Turns coded item properties (code, param, min, max) from the game tables
into tooltip text.

Resolution order for a property:
    1. SPECIAL_FORMATTERS[code]          bespoke wording (skill tabs, poison, ...)
    2. properties.txt *Tooltip           template with '#' placeholders
    3. FALLBACK_TOOLTIPS[code]           templates missing from properties.txt
    4. raw "code[ param][: min[-max]]"   never fails

Usage:
    translator = PropertyTranslator(parse_properties_txt(text), skills=skills)
    translator.translate(Property("str", "", 10, 20)).text   # "+(10 to 20) to Strength"
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional

from tsv_reader import parse_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertyDef:
    """One row of properties.txt."""
    code: str
    tooltip: str
    parameter: str = ""


@dataclass(frozen=True)
class Property:
    """A coded property as it appears in the item tables."""
    code: str
    param: str = ""
    min: int = 0
    max: int = 0


@dataclass(frozen=True)
class TranslatedProperty:
    text: str
    raw_code: str
    param: str
    min: int
    max: int


# ─── Lookup tables ──────────────────────────────────

class SkillTab(NamedTuple):
    name: str
    class_name: str


# Skill tab ids 0-20, three per class
SKILL_TAB_MAP: Dict[int, SkillTab] = {
    0: SkillTab("Bow and Crossbow Skills", "Amazon"),
    1: SkillTab("Passive and Magic Skills", "Amazon"),
    2: SkillTab("Javelin and Spear Skills", "Amazon"),
    3: SkillTab("Fire Spells", "Sorceress"),
    4: SkillTab("Lightning Spells", "Sorceress"),
    5: SkillTab("Cold Spells", "Sorceress"),
    6: SkillTab("Curses", "Necromancer"),
    7: SkillTab("Poison and Bone Spells", "Necromancer"),
    8: SkillTab("Summoning Skills", "Necromancer"),
    9: SkillTab("Combat Skills", "Paladin"),
    10: SkillTab("Offensive Auras", "Paladin"),
    11: SkillTab("Defensive Auras", "Paladin"),
    12: SkillTab("Combat Skills", "Barbarian"),
    13: SkillTab("Combat Masteries", "Barbarian"),
    14: SkillTab("Warcries", "Barbarian"),
    15: SkillTab("Summoning Skills", "Druid"),
    16: SkillTab("Shape Shifting Skills", "Druid"),
    17: SkillTab("Elemental Skills", "Druid"),
    18: SkillTab("Traps", "Assassin"),
    19: SkillTab("Shadow Disciplines", "Assassin"),
    20: SkillTab("Martial Arts", "Assassin"),
}

CHAR_CLASS_NAMES: Dict[str, str] = {
    "ama": "Amazon",
    "sor": "Sorceress",
    "nec": "Necromancer",
    "pal": "Paladin",
    "bar": "Barbarian",
    "dru": "Druid",
    "ass": "Assassin",
}

# Class index order used by randclassskill min/max
CLASS_INDEX_NAMES = ("Amazon", "Sorceress", "Necromancer", "Paladin", "Barbarian", "Druid", "Assassin")

# Numeric skill ids that appear as oskill/skill params
SKILL_ID_NAMES: Dict[int, str] = {
    6: "Magic Arrow", 7: "Fire Arrow", 8: "Inner Sight", 9: "Critical Strike",
    10: "Jab", 11: "Cold Arrow", 12: "Multiple Shot", 13: "Dodge",
    14: "Power Strike", 15: "Poison Javelin", 16: "Exploding Arrow",
    17: "Slow Missiles", 18: "Avoid", 19: "Impale", 20: "Lightning Bolt",
    21: "Ice Arrow", 22: "Guided Arrow", 23: "Penetrate", 24: "Charged Strike",
    25: "Plague Javelin", 26: "Strafe", 27: "Immolation Arrow", 28: "Decoy",
    29: "Evade", 30: "Fend", 31: "Freezing Arrow", 32: "Valkyrie", 33: "Pierce",
    34: "Lightning Strike", 35: "Lightning Fury", 36: "Fire Bolt", 37: "Warmth",
    38: "Charged Bolt", 39: "Ice Bolt", 40: "Frozen Armor", 41: "Inferno",
    42: "Static Field", 43: "Telekinesis", 44: "Frost Nova", 45: "Ice Blast",
    46: "Blaze", 47: "Fire Ball", 48: "Nova", 49: "Lightning", 50: "Shiver Armor",
    51: "Fire Wall", 52: "Enchant", 53: "Chain Lightning", 54: "Teleport",
    765: "Bonus Crossbow Damage",
}

# Properties with an empty *Tooltip in properties.txt
FALLBACK_TOOLTIPS: Dict[str, str] = {
    "strpercent": "+#% Bonus to Strength",
    "dexpercent": "+#% Bonus to Dexterity",
    "vitpercent": "+#% Bonus to Vitality",
    "enepercent": "+#% Bonus to Energy",
    "extra-summ": "+#% to Summon Damage",
    "extra-summ-total": "+#% Total Multiplier to Summon Damage Stat",
}

# Description text lives in the game's string tables, keyed by monster hcIdx
MYTHICAL_DESCRIPTIONS: Dict[int, List[str]] = {
    1074: [  # Ancient Totem of Scosglen
        "Every 5 attacks, you gain Resonance with a specific element, empowering "
        "the element and making Flameburst, Twister, or Frozen Blast fire three "
        "times more projectiles, respectively",
        "Elemental spells now synergize across all elements",
    ],
}
MYTHICAL_DESC_CODES = frozenset({
    "mythicaldesc", "mythicaldescnoflag", "mythicaldescmanaflag", "mythicaldescascendancyflag",
})

SPECIAL_DESCRIPTIONS: Dict[str, str] = {
    "druid-summons-pounce": "If you have at least 1000 dexterity, your Wolves can use Pounce",
}

PER_LEVEL_SUFFIX = "/lvl"
PER_LEVEL_DIVISOR = 8
POISON_FRAMES_PER_SECOND = 25
POISON_DAMAGE_DIVISOR = 256

_BRACKET_PLACEHOLDER = re.compile(r"\[.*?\]")
_PLUS_NEGATIVE_RANGE = re.compile(r"\+\((-\d+ to -?\d+)\)")


# ─── Value formatting ───────────────────────────────

def format_value(low: int, high: int) -> str:
    """"5" for a fixed value, "(5 to 10)" for a range."""
    return str(low) if low == high else f"({low} to {high})"


def format_decimal(value: float) -> str:
    """Whole numbers without a trailing .0 (4.0 → "4", 10.24 → "10.24")."""
    if value == int(value):
        return str(int(value))
    return f"{value:g}"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def fix_signs(text: str) -> str:
    """Collapse '+' next to a negative number: +-5, +(-5 to -2), +(-5 to 2)."""
    text = _PLUS_NEGATIVE_RANGE.sub(r"(\1)", text)
    return text.replace("+-", "-")


def per_level_value(prop: Property) -> float:
    """Per-level magnitude: param/8, max/param when max is set, or max/8 without a param."""
    param = parse_number(prop.param)
    if param > 0:
        if prop.max:
            return prop.max / param
        return param / PER_LEVEL_DIVISOR
    return prop.max / PER_LEVEL_DIVISOR


# ─── Special formatters ─────────────────────────────
# Each returns the text, or None to fall through to the tooltip path.

Formatter = Callable[["PropertyTranslator", Property], Optional[str]]


def _format_skill_tab(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    value = format_value(prop.min, prop.max)
    tab = SKILL_TAB_MAP.get(parse_number(prop.param)) if prop.param.strip().isdigit() else None
    if tab is None:
        return f"+{value} to {prop.param} Skills"
    return f"+{value} to {tab.name} ({tab.class_name} Only)"


def _format_physical_resist(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    return f"Physical Resist: {format_value(prop.min, prop.max)}%"


def _format_poison(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    frames = parse_number(prop.param)
    if frames <= 0:
        return None
    seconds = format_decimal(frames / POISON_FRAMES_PER_SECOND)
    low = round_half_up(prop.min * frames / POISON_DAMAGE_DIVISOR)
    high = round_half_up(prop.max * frames / POISON_DAMAGE_DIVISOR)
    damage = str(low) if low == high else f"{low}-{high}"
    return f"Adds {damage} Poison Damage Over {seconds} Seconds"


def _format_oskill(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    if not prop.param:
        return None
    return f"+{format_value(prop.min, prop.max)} to {translator.skill_name(prop.param)}"


def _format_class_skill(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    if not prop.param:
        return None
    skill = translator.skill_name(prop.param)
    text = f"+{format_value(prop.min, prop.max)} to {skill}"
    class_name = translator.class_for_skill(skill)
    return f"{text} ({class_name} Only)" if class_name else text


def _format_steal(resource: str) -> Formatter:
    def formatter(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
        return f"{format_value(prop.min, prop.max)}% {resource} Stolen per Hit"
    return formatter


def _format_random_class_skill(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    # param is the skill level bonus, min/max the range of class indexes
    level = parse_number(prop.param) or 1
    if prop.min == prop.max and 0 <= prop.min < len(CLASS_INDEX_NAMES):
        return f"+{level} to {CLASS_INDEX_NAMES[prop.min]} Skill Levels"
    return f"+{level} to Random Character Class Skills"


def _format_reanimate(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    monster = translator.monster_name(prop.param)
    if monster is None:
        return None
    return f"{format_value(prop.min, prop.max)}% Reanimate as: {monster}"


def _format_mythical(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    lines = MYTHICAL_DESCRIPTIONS.get(parse_number(prop.param))
    return " ".join(lines) if lines else None


def _format_special_description(translator: "PropertyTranslator", prop: Property) -> Optional[str]:
    return SPECIAL_DESCRIPTIONS.get(prop.code)


SPECIAL_FORMATTERS: Dict[str, Formatter] = {
    "skilltab": _format_skill_tab,
    "red-dmg%": _format_physical_resist,
    "dmg-pois": _format_poison,
    "oskill": _format_oskill,
    "skill": _format_class_skill,
    "lifesteal": _format_steal("Life"),
    "manasteal": _format_steal("Mana"),
    "randclassskill": _format_random_class_skill,
    "reanimate": _format_reanimate,
}
SPECIAL_FORMATTERS.update({code: _format_mythical for code in MYTHICAL_DESC_CODES})
SPECIAL_FORMATTERS.update({code: _format_special_description for code in SPECIAL_DESCRIPTIONS})


class PropertyTranslator:
    """Translates property codes using properties.txt definitions.

    skills: rows with .skill / .char_class (skills.txt), used for
            "(Class Only)" suffixes.
    monsters: hcIdx → monster name (monstats.txt), used by reanimate.
    """

    def __init__(
        self,
        definitions: Iterable[PropertyDef],
        skills: Optional[Iterable] = None,
        monsters: Optional[Mapping[int, str]] = None,
    ):
        self._definitions: Dict[str, PropertyDef] = {d.code: d for d in definitions}
        self._skill_classes: Dict[str, str] = {
            s.skill: s.char_class for s in (skills or []) if s.char_class
        }
        self._monsters: Dict[int, str] = dict(monsters or {})

    # ─── Public API ─────────────────────────────

    def translate(self, prop: Property) -> TranslatedProperty:
        text = None
        formatter = SPECIAL_FORMATTERS.get(prop.code)
        if formatter is not None:
            text = formatter(self, prop)

        if text is None:
            tooltip = self._tooltip_for(prop.code)
            text = self._fill_tooltip(tooltip, prop) if tooltip else self.format_raw(prop)

        return TranslatedProperty(
            text=fix_signs(text),
            raw_code=prop.code,
            param=prop.param,
            min=prop.min,
            max=prop.max,
        )

    def translate_all(self, props: Iterable[Property]) -> List[TranslatedProperty]:
        return [self.translate(p) for p in props]

    def has_property(self, code: str) -> bool:
        return code in self._definitions

    def get_definition(self, code: str) -> Optional[PropertyDef]:
        return self._definitions.get(code)

    # ─── Lookups used by formatters ─────────────

    def skill_name(self, param: str) -> str:
        param = param.strip()
        if param.isdigit():
            return SKILL_ID_NAMES.get(int(param), param)
        return param

    def class_for_skill(self, skill: str) -> str:
        return CHAR_CLASS_NAMES.get(self._skill_classes.get(skill, ""), "")

    def monster_name(self, param: str) -> Optional[str]:
        if not param.strip().isdigit():
            return None
        return self._monsters.get(int(param))

    # ─── Formatting ─────────────────────────────

    def _tooltip_for(self, code: str) -> Optional[str]:
        definition = self._definitions.get(code)
        if definition is not None and definition.tooltip:
            return definition.tooltip
        return FALLBACK_TOOLTIPS.get(code)

    def _fill_tooltip(self, tooltip: str, prop: Property) -> str:
        if prop.code.endswith(PER_LEVEL_SUFFIX):
            # Per-level params are divisors, never appended
            return tooltip.replace("#", format_decimal(per_level_value(prop)), 1)

        if tooltip.count("#") >= 2:
            text = tooltip.replace("#", str(prop.min), 1).replace("#", str(prop.max), 1)
        else:
            text = tooltip.replace("#", format_value(prop.min, prop.max), 1)

        if prop.param:
            if "[" in text:
                text = _BRACKET_PLACEHOLDER.sub(prop.param, text, count=1)
            elif prop.param not in text:
                text = f"{text} ({prop.param})"
        return text

    @staticmethod
    def format_raw(prop: Property) -> str:
        text = prop.code
        if prop.param:
            text += f" {prop.param}"
        if prop.min == prop.max and prop.min != 0:
            text += f": {prop.min}"
        elif prop.min != 0 or prop.max != 0:
            text += f": {prop.min}-{prop.max}"
        return text


def create_property_translator(
    definitions: Iterable[PropertyDef],
    skills: Optional[Iterable] = None,
    monsters: Optional[Mapping[int, str]] = None,
) -> PropertyTranslator:
    return PropertyTranslator(definitions, skills=skills, monsters=monsters)
