"""
Runeforge - Record Store
Keyed JSON tables on disk, one file per table:

    <store_dir>/gems.json       {"Chipped Ruby": {...}, ...}
    <store_dir>/runewords.json  {"Stone#1": {...}, ...}
    <store_dir>/meta.json       {"data_version": "3.9.09", ...}

Writes are last-write-wins on identical keys. Tables are loaded lazily and
kept in memory; every write rewrites the table file.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

META_TABLE = "meta"


def runeword_key(name: str, variant: int) -> str:
    return f"{name}#{variant}"


class RecordStore:

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.Lock()

    # ─── Reads ──────────────────────────────────

    def get(self, table: str, key: str) -> Optional[Record]:
        with self._lock:
            return self._table(table).get(key)

    def all(self, table: str) -> List[Record]:
        with self._lock:
            return list(self._table(table).values())

    def query(self, table: str, field: str, value: Any) -> List[Record]:
        """Records whose top-level field equals value."""
        with self._lock:
            return [r for r in self._table(table).values() if r.get(field) == value]

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))

    # ─── Writes ─────────────────────────────────

    def put(self, table: str, key: str, record: Record):
        self.bulk_put(table, [(key, record)])

    def bulk_put(self, table: str, items: Iterable[Tuple[str, Record]]) -> int:
        with self._lock:
            rows = self._table(table)
            written = 0
            for key, record in items:
                rows[key] = record
                written += 1
            self._save(table)
        logger.debug(f"RecordStore: {written} records → {table}")
        return written

    def clear(self, table: str):
        with self._lock:
            self._tables[table] = {}
            self._save(table)

    # ─── Metadata ───────────────────────────────

    def get_meta(self, key: str) -> Optional[str]:
        record = self.get(META_TABLE, key)
        return record.get("value") if record else None

    def set_meta(self, key: str, value: str):
        self.put(META_TABLE, key, {"key": key, "value": value})

    # ─── Disk ───────────────────────────────────

    def _path(self, table: str) -> Path:
        return self.directory / f"{table}.json"

    def _table(self, table: str) -> Dict[str, Record]:
        if table not in self._tables:
            self._tables[table] = self._load(table)
        return self._tables[table]

    def _load(self, table: str) -> Dict[str, Record]:
        path = self._path(table)
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("table file is not a JSON object")
            return data
        except (OSError, ValueError) as e:
            logger.warning(f"RecordStore: could not read {path.name}, starting empty: {e}")
            return {}

    def _save(self, table: str):
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(table)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(self._tables.get(table, {}), fh, indent=2, ensure_ascii=False)
        tmp.replace(path)
