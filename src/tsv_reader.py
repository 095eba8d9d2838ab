"""
Runeforge - TSV Reader
Splits tab-separated game tables (runes.txt, uniqueitems.txt, ...) into
header-keyed rows and provides the cell coercions every table parser uses.
"""

import logging
import re
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

TsvRow = Dict[str, str]

# Section-boundary rows in the game tables ("Expansion" separates classic/LoD rows);
# any line whose text starts with one of these is dropped
MARKER_PREFIXES = ("Expansion",)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_TRUTHY = frozenset({"1", "true"})


def _split_lines(content: str) -> List[str]:
    return [line.rstrip("\r") for line in content.split("\n") if line.strip()]


def get_tsv_headers(content: str) -> List[str]:
    """Return the header names of a table, or [] for empty input."""
    lines = _split_lines(content)
    if not lines:
        return []
    return [h.strip() for h in lines[0].split("\t")]


def parse_tsv(content: str) -> List[TsvRow]:
    """
    Parse tab-separated text into a list of rows keyed by header name.

    Blank lines and marker rows are dropped. Missing trailing cells come
    back as empty strings so callers can index any header safely.
    Header-only or empty input returns [].
    """
    lines = _split_lines(content)
    if len(lines) < 2:
        return []

    headers = [h.strip() for h in lines[0].split("\t")]
    rows: List[TsvRow] = []
    skipped = 0

    for line in lines[1:]:
        if line.strip().startswith(MARKER_PREFIXES):
            skipped += 1
            continue

        values = line.split("\t")

        row: TsvRow = {}
        for i, header in enumerate(headers):
            row[header] = values[i].strip() if i < len(values) else ""
        rows.append(row)

    if skipped:
        logger.debug(f"TsvReader: skipped {skipped} marker rows")
    return rows


def parse_number(value: Optional[str]) -> int:
    """Leading-integer parse; empty or non-numeric text is 0."""
    if not value:
        return 0
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else 0


def parse_boolean(value: Optional[str]) -> bool:
    if not value:
        return False
    return value.strip().lower() in _TRUTHY


def collect_column_values(row: TsvRow, prefix: str, count: int) -> List[str]:
    """Collect non-empty values from Prefix1..PrefixN, preserving order."""
    values = []
    for i in range(1, count + 1):
        value = row.get(f"{prefix}{i}", "").strip()
        if value:
            values.append(value)
    return values
