"""
Runeforge Core — refresh engine for the socketables and runewords data.

Usage:
    from core import SyncEngine, SyncConfig
    from games.esr import create_esr_config

    engine = SyncEngine(create_esr_config())
    engine.refresh()
    runewords = engine.load_runewords()
"""

from core.sync_config import SyncConfig
from core.sync_engine import SyncEngine

__all__ = [
    "SyncEngine",
    "SyncConfig",
]
