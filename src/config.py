"""
Runeforge - Configuration
All tunable constants in one place.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

# ─────────────────────────────────────────────
# Version
# ─────────────────────────────────────────────
APP_NAME = "Runeforge"
APP_VERSION = "0.4.0"

# ─────────────────────────────────────────────
# Remote Sources
# ─────────────────────────────────────────────
# Eastern Sun Resurrected documentation site (gems.htm / runewords.htm)
ESR_BASE_URL = os.environ.get(
    "ESR_BASE_URL",
    "https://celestialrayone.github.io/Eastern_Sun_Resurrected/docs",
).rstrip("/")
GEMS_URL = f"{ESR_BASE_URL}/gems.htm"
RUNEWORDS_URL = f"{ESR_BASE_URL}/runewords.htm"
CHANGELOG_URL = f"{ESR_BASE_URL}/changelogs.html"

# Game data tables (tab-separated .txt files)
TXT_BASE_URL = os.environ.get("ESR_TXT_BASE_URL", f"{ESR_BASE_URL}/txt").rstrip("/")
TXT_FILES = {
    "properties": "properties.txt",
    "gems": "gems.txt",
    "runes": "runes.txt",
    "unique_items": "uniqueitems.txt",
    "sets": "sets.txt",
    "set_items": "setitems.txt",
    "weapons": "weapons.txt",
    "armor": "armor.txt",
    "misc": "misc.txt",
    "item_types": "itemtypes.txt",
    "cubemain": "cubemain.txt",
    "skills": "skills.txt",
    "monstats": "monstats.txt",
}

# ─────────────────────────────────────────────
# HTTP
# ─────────────────────────────────────────────
HTTP_TIMEOUT = 20  # seconds
USER_AGENT = f"{APP_NAME}/{APP_VERSION}"

# ─────────────────────────────────────────────
# Cache & Storage
# ─────────────────────────────────────────────
DATA_DIR = Path(os.environ.get(
    "ESR_CACHE_DIR",
    Path(os.path.expanduser("~")) / ".runeforge",
))
CACHE_DIR = DATA_DIR / "cache"
SOURCE_CACHE_DIR = CACHE_DIR / "sources"
SOURCE_CACHE_TTL = 6 * 3600  # re-download documents after 6 hours
STORE_DIR = DATA_DIR / "store"

# ─────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────
LOG_LEVEL = os.environ.get("ESR_LOG_LEVEL", "INFO")
LOG_FILE = DATA_DIR / "runeforge.log"
