"""
Runeforge - Markup Extractor
Locates structural anchors in the socketable/runeword HTML documents and
pulls plain text, color attributes and bonus text blocks out of them.

Document conventions this module relies on:
    - item header cells carry colspan="3"
    - names are <b><font color="...">Name</font></b> (colored) or <b>Name</b>
    - a header row's bonuses live in the second <tr> after it, one cell
      per bonus column
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Parser used for every document; it lowercases tag and attribute names,
# which makes FONT/font and COLOR/color matching case-insensitive.
HTML_PARSER = "html.parser"

BR_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)
DOUBLE_BR_PATTERN = re.compile(r"<br\s*/?>\s*<br\s*/?>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")
REQ_LEVEL_PATTERN = re.compile(r"Req Lvl:\s*(\d+)", re.IGNORECASE)

# Only the entities that survive innerHTML serialisation of the source text
_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

KANJI_SENTINEL_COLOR = "BLUE"


class ColorKind(str, Enum):
    NONE = "none"
    BLUE = "blue"
    OTHER = "other"


@dataclass(frozen=True)
class FontColor:
    """Inner font color of a header cell, as a tagged value."""
    kind: ColorKind
    value: str = ""  # upper-cased attribute, "" when kind is NONE

    @classmethod
    def from_attribute(cls, raw: Optional[str]) -> "FontColor":
        if raw is None:
            return NO_COLOR
        value = raw.strip().upper()
        if value == KANJI_SENTINEL_COLOR:
            return cls(ColorKind.BLUE, value)
        return cls(ColorKind.OTHER, value)

    @property
    def is_colored(self) -> bool:
        return self.kind != ColorKind.NONE


NO_COLOR = FontColor(ColorKind.NONE)


# ─── Documents & text helpers ───────────────────────

def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", HTML_PARSER)


def strip_tags(markup: str) -> str:
    return TAG_PATTERN.sub("", markup)


def decode_entities(text: str) -> str:
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def inner_markup(tag: Optional[Tag]) -> str:
    """Serialized children of a tag (the innerHTML equivalent)."""
    if tag is None:
        return ""
    return tag.decode_contents()


def split_markup_lines(markup: str) -> List[str]:
    """Split markup on line breaks into clean, non-empty text lines."""
    if not markup.strip():
        return []
    lines = []
    for chunk in BR_PATTERN.split(markup):
        line = collapse_whitespace(decode_entities(strip_tags(chunk)))
        if line:
            lines.append(line)
    return lines


def split_cell_lines(cell: Optional[Tag]) -> List[str]:
    return split_markup_lines(inner_markup(cell))


def split_runeword_bonus_lines(cell: Optional[Tag]) -> List[str]:
    """Lines of a runeword bonus cell, before the first double line break.

    Runeword cells read "[runeword bonuses]<br><br>[rune bonuses]"; only
    the runeword part is returned.
    """
    markup = inner_markup(cell)
    if not markup.strip():
        return []
    head = DOUBLE_BR_PATTERN.split(markup, maxsplit=1)[0]
    return split_markup_lines(head)


# ─── Header cells ───────────────────────────────────

def find_header_cells(soup: BeautifulSoup) -> List[Tag]:
    return soup.find_all("td", attrs={"colspan": "3"})


def find_inner_font(cell: Tag) -> Optional[Tag]:
    """First colored <font> nested inside a <b> of the cell."""
    return cell.select_one("b font[color]")


def has_colored_inner_font(cell: Tag) -> bool:
    return find_inner_font(cell) is not None


def get_inner_font_color(cell: Tag) -> FontColor:
    font = find_inner_font(cell)
    if font is None:
        return NO_COLOR
    return FontColor.from_attribute(font.get("color"))


def get_item_name(cell: Tag) -> str:
    """Colored inner font text if present, else the <b> text, else ""."""
    font = find_inner_font(cell)
    if font is not None:
        text = font.get_text().strip()
        if text:
            return text

    bold = cell.find("b")
    if bold is not None:
        return bold.get_text().strip()
    return ""


def parse_req_level(text: Optional[str]) -> int:
    if not text:
        return 0
    m = REQ_LEVEL_PATTERN.search(text)
    return int(m.group(1)) if m else 0


def header_row_of(cell: Tag) -> Optional[Tag]:
    parent = cell.parent
    if parent is not None and parent.name == "tr":
        return parent
    return cell.find_parent("tr")


def find_bonus_row(header_row: Tag) -> Optional[Tag]:
    """The second <tr> after the header row (the first holds column titles)."""
    following = header_row.find_next_siblings("tr", limit=2)
    if len(following) < 2:
        return None
    return following[1]
