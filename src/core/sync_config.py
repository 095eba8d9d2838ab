"""
SyncConfig — everything the refresh engine needs, in one dataclass.

Created by a mod factory (games.esr.create_esr_config) and passed to
SyncEngine so the engine and its collaborators never read config.py.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


@dataclass
class SyncConfig:
    """Complete configuration for one mod's data refresh."""

    # ── Identity ────────────────────────────────────────────
    mod_id: str                           # e.g. "esr"
    cache_dir: Path                       # base cache directory

    # ── Documentation site ──────────────────────────────────
    gems_url: str                         # socketables document (gems.htm)
    runewords_url: str                    # runewords.htm
    changelog_url: str                    # release notes, first entry = latest version

    # ── Game tables ─────────────────────────────────────────
    txt_base_url: str = ""                # directory holding the .txt tables
    txt_files: Dict[str, str] = field(default_factory=dict)   # role → file name

    # ── HTTP / caching ──────────────────────────────────────
    http_timeout: int = 20                # seconds
    source_cache_ttl: int = 6 * 3600      # seconds

    # ── Storage ─────────────────────────────────────────────
    store_dir: Path = Path(".")

    @property
    def source_cache_dir(self) -> Path:
        return self.cache_dir / "sources"

    def txt_url(self, role: str) -> str:
        return f"{self.txt_base_url}/{self.txt_files[role]}"
