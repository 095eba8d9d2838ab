"""
Eastern Sun Resurrected configuration factory.

Creates a SyncConfig populated from config.py (which in turn honours the
ESR_* environment variables).
"""

from pathlib import Path
from typing import Optional

from core.sync_config import SyncConfig


def create_esr_config(
    base_url: Optional[str] = None,
    cache_dir: Optional[Path] = None,
) -> SyncConfig:
    """Create a SyncConfig for Eastern Sun Resurrected.

    Args:
        base_url: Override the documentation site. Defaults to config.ESR_BASE_URL.
        cache_dir: Override the cache directory. Defaults to config.CACHE_DIR;
            the record store then lives next to it.

    Returns:
        Fully populated SyncConfig for ESR.
    """
    from config import (
        CACHE_DIR,
        CHANGELOG_URL,
        ESR_BASE_URL,
        GEMS_URL,
        HTTP_TIMEOUT,
        RUNEWORDS_URL,
        SOURCE_CACHE_TTL,
        STORE_DIR,
        TXT_BASE_URL,
        TXT_FILES,
    )

    gems_url, runewords_url, changelog_url = GEMS_URL, RUNEWORDS_URL, CHANGELOG_URL
    txt_base_url = TXT_BASE_URL
    if base_url:
        base = base_url.rstrip("/")
        gems_url = f"{base}/gems.htm"
        runewords_url = f"{base}/runewords.htm"
        changelog_url = f"{base}/changelogs.html"
        if TXT_BASE_URL.startswith(ESR_BASE_URL):
            txt_base_url = base + TXT_BASE_URL[len(ESR_BASE_URL):]

    _cache_dir = Path(cache_dir) if cache_dir else CACHE_DIR
    _store_dir = _cache_dir.parent / "store" if cache_dir else STORE_DIR

    return SyncConfig(
        # Identity
        mod_id="esr",
        cache_dir=_cache_dir,

        # Documentation site
        gems_url=gems_url,
        runewords_url=runewords_url,
        changelog_url=changelog_url,

        # Game tables
        txt_base_url=txt_base_url,
        txt_files=dict(TXT_FILES),

        # HTTP / caching
        http_timeout=HTTP_TIMEOUT,
        source_cache_ttl=SOURCE_CACHE_TTL,

        # Storage
        store_dir=_store_dir,
    )
