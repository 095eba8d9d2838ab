"""
Runeforge - Source Fetcher
Downloads the mod's documents (gems.htm, runewords.htm, changelog, .txt
tables) with a TTL disk cache.

Cache policy:
    fresh cache (age < ttl)      → served without a request
    stale / missing cache        → downloaded, cache rewritten
    download fails, cache exists → stale copy served, warning logged
    download fails, no cache     → SourceFetchError
"""

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

from config import CHANGELOG_URL, HTTP_TIMEOUT, SOURCE_CACHE_DIR, SOURCE_CACHE_TTL, USER_AGENT

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(
    r"Eastern\s+Sun\s+Resurrected\s+(\d+\.\d+\.\d+)\s+-\s+(\d{2}/\d{2}/\d{4})"
)


class SourceFetchError(RuntimeError):
    """A source document could not be retrieved or understood."""


@dataclass(frozen=True)
class ChangelogVersion:
    version: str        # "3.9.09"
    full_string: str    # "Eastern Sun Resurrected 3.9.09 - 22/12/2025"
    date: str           # "22/12/2025"


# ─── Version helpers ────────────────────────────────

def parse_changelog_version(html: str) -> ChangelogVersion:
    m = VERSION_PATTERN.search(html)
    if not m:
        raise SourceFetchError("Could not parse version from changelog")
    return ChangelogVersion(version=m.group(1), full_string=m.group(0), date=m.group(2))


def _version_parts(version: str) -> List[int]:
    parts = []
    for piece in version.split("."):
        m = re.match(r"\d+", piece)
        parts.append(int(m.group(0)) if m else 0)
    return parts


def compare_versions(a: str, b: str) -> int:
    """-1, 0 or 1; missing trailing parts count as 0 ("3.9" == "3.9.0")."""
    a_parts, b_parts = _version_parts(a), _version_parts(b)
    for i in range(max(len(a_parts), len(b_parts))):
        x = a_parts[i] if i < len(a_parts) else 0
        y = b_parts[i] if i < len(b_parts) else 0
        if x != y:
            return -1 if x < y else 1
    return 0


def is_version_different(stored: Optional[str], remote: str) -> bool:
    if stored is None:
        return True
    return compare_versions(stored, remote) != 0


# ─── Fetcher ────────────────────────────────────────

class SourceFetcher:
    """HTTP client for the mod documents, backed by a per-file disk cache."""

    def __init__(
        self,
        cache_dir: Path = SOURCE_CACHE_DIR,
        ttl: int = SOURCE_CACHE_TTL,
        timeout: int = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "text/html,text/plain,*/*",
        })

    def fetch_text(self, url: str, cache_name: Optional[str] = None, force: bool = False) -> str:
        """Return the document body; cache_name=None bypasses the disk cache."""
        cached = self._load_from_disk(cache_name) if cache_name else None
        if cached is not None and not force:
            text, age = cached
            if age < self.ttl:
                logger.debug(f"SourceFetcher: {cache_name} from cache ({age:.0f}s old)")
                return text

        try:
            text = self._download(url)
        except requests.RequestException as e:
            if cached is not None:
                logger.warning(f"SourceFetcher: {url} failed ({e}), using cached {cache_name}")
                return cached[0]
            raise SourceFetchError(f"Failed to fetch {url}: {e}") from e

        if cache_name:
            self._save_to_disk(cache_name, text)
        return text

    def fetch_latest_version(self, url: str = CHANGELOG_URL) -> ChangelogVersion:
        """Latest release announced in the changelog; never cached."""
        return parse_changelog_version(self.fetch_text(url))

    # ─── HTTP ───────────────────────────────────

    def _download(self, url: str) -> str:
        start = time.time()
        resp = self._session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        logger.info(f"SourceFetcher: {url} ({len(resp.text)} chars, {time.time() - start:.1f}s)")
        return resp.text

    # ─── Disk Cache ─────────────────────────────

    def _cache_path(self, cache_name: str) -> Path:
        return self.cache_dir / cache_name

    def _load_from_disk(self, cache_name: str):
        """(text, age_seconds) or None when missing/unreadable."""
        path = self._cache_path(cache_name)
        try:
            if not path.exists():
                return None
            age = time.time() - path.stat().st_mtime
            return path.read_text(encoding="utf-8"), age
        except OSError as e:
            logger.warning(f"SourceFetcher: cache read failed for {cache_name}: {e}")
            return None

    def _save_to_disk(self, cache_name: str, text: str):
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._cache_path(cache_name).write_text(text, encoding="utf-8")
        except OSError as e:
            logger.warning(f"SourceFetcher: cache write failed for {cache_name}: {e}")
