"""Shared fixtures for Runeforge test suite."""

import sys
import logging
from pathlib import Path

import pytest

# Ensure src/ is importable
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from data_context import DataContext
from runeword_parser import parse_runewords_html
from socketable_parser import parse_socketables_html

logger = logging.getLogger(__name__)

# ── Fixtures directory ───────────────────────────────────

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(filename):
    """Load a single fixture file by name."""
    path = FIXTURES_DIR / filename
    if not path.exists():
        pytest.skip(f"Fixture {filename} not found")
    return path.read_text(encoding="utf-8")


# ── Source documents ─────────────────────────────────────

@pytest.fixture(scope="session")
def gems_html():
    """Trimmed gems.htm: gems, a crystal, ESR/LoD/Kanji runes and noise headers."""
    return load_fixture("gems_sample.htm")


@pytest.fixture(scope="session")
def runewords_html():
    """Trimmed runewords.htm: both rune-list formats, a repeated name, broken rows."""
    return load_fixture("runewords_sample.htm")


@pytest.fixture(scope="session")
def changelog_html():
    return load_fixture("changelogs_sample.html")


# ── Parsed data (session-scoped, parsing is pure) ────────

@pytest.fixture(scope="session")
def socketables(gems_html):
    return parse_socketables_html(gems_html)


@pytest.fixture(scope="session")
def data_context(socketables):
    return DataContext.from_socketables(socketables)


@pytest.fixture(scope="session")
def runewords(runewords_html, data_context):
    """Fixture runewords with derived fields, in document order."""
    return parse_runewords_html(runewords_html, data_context.lookups)


@pytest.fixture
def runeword_named(runewords):
    """Look up a fixture runeword by name (and variant)."""
    def _get(name, variant=1):
        for rw in runewords:
            if rw.name == name and rw.variant == variant:
                return rw
        raise KeyError(f"{name} v{variant} not in fixture")
    return _get


# ── Helper factories ─────────────────────────────────────

def make_tsv(headers, *rows):
    """Build tab-separated table text; short rows are left short on purpose."""
    lines = ["\t".join(headers)]
    lines.extend("\t".join(str(cell) for cell in row) for row in rows)
    return "\n".join(lines) + "\n"


@pytest.fixture
def tsv():
    """The make_tsv builder, for table-parser tests."""
    return make_tsv
