"""SQLiteStore: local file-based head tables for single hosts and CI caching.

Schema:
  heads        one row per head of a source, keyed by (source, kind, name).
  generations  one row per source holding its write counter.

The generation check and the table change run in the same transaction, so
two processes sharing the database file cannot both win a compare-and-swap.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import TYPE_CHECKING

from headscan_store.base import BaseStore, StaleGenerationError
from headscan_store.models import HeadRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS heads (
    source      TEXT NOT NULL,
    kind        TEXT NOT NULL,
    name        TEXT NOT NULL,
    sha         TEXT NOT NULL,
    target_sha  TEXT DEFAULT '',
    target      TEXT DEFAULT '',
    origin      TEXT DEFAULT '',
    updated_at  TEXT,
    PRIMARY KEY (source, kind, name)
);
CREATE TABLE IF NOT EXISTS generations (
    source      TEXT PRIMARY KEY,
    generation  INTEGER NOT NULL DEFAULT 0
);
"""


class SQLiteStore(BaseStore):
    """Stores head tables in a local SQLite database file.

    The database file path defaults to `.headscan.db` in the current working
    directory. Configure via .headscan.yml: `store_path: /path/to/headscan.db`.
    """

    def __init__(self, db_path: str = ".headscan.db"):
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def list_heads(self, source: str, kind: str | None = None) -> list[HeadRecord]:
        with self._lock:
            if kind is not None:
                rows = self._conn.execute(
                    "SELECT * FROM heads WHERE source=? AND kind=? ORDER BY kind, name",
                    (source, kind),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM heads WHERE source=? ORDER BY kind, name",
                    (source,),
                ).fetchall()

        return [self._row_to_record(r) for r in rows]

    def generation(self, source: str) -> int:
        with self._lock:
            row = self._conn.execute("SELECT generation FROM generations WHERE source=?", (source,)).fetchone()
        return row["generation"] if row else 0

    def replace(self, source: str, records: Iterable[HeadRecord], expected_generation: int | None = None) -> int:
        records = list(records)
        with self._lock, self._conn:
            generation = self._bump(source, expected_generation)
            self._conn.execute("DELETE FROM heads WHERE source=?", (source,))
            self._insert(source, records)
        logger.debug("Replaced head table of %s with %d head(s)", source, len(records))
        return generation

    def apply_delta(
        self,
        source: str,
        upserts: Iterable[HeadRecord],
        removals: Iterable[tuple[str, str]] = (),
        expected_generation: int | None = None,
    ) -> int:
        upserts = list(upserts)
        removals = list(removals)
        with self._lock, self._conn:
            generation = self._bump(source, expected_generation)
            self._conn.executemany(
                "DELETE FROM heads WHERE source=? AND kind=? AND name=?",
                [(source, kind, name) for kind, name in removals],
            )
            self._insert(source, upserts)
        return generation

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------ #
    # Internals (caller holds the lock and an open transaction)            #
    # ------------------------------------------------------------------ #

    def _bump(self, source: str, expected_generation: int | None) -> int:
        self._conn.execute("INSERT OR IGNORE INTO generations (source, generation) VALUES (?, 0)", (source,))
        if expected_generation is None:
            self._conn.execute("UPDATE generations SET generation = generation + 1 WHERE source=?", (source,))
        else:
            cursor = self._conn.execute(
                "UPDATE generations SET generation = generation + 1 WHERE source=? AND generation=?",
                (source, expected_generation),
            )
            if cursor.rowcount == 0:
                actual = self._conn.execute(
                    "SELECT generation FROM generations WHERE source=?", (source,)
                ).fetchone()["generation"]
                raise StaleGenerationError(source, expected_generation, actual)
        return self._conn.execute("SELECT generation FROM generations WHERE source=?", (source,)).fetchone()[
            "generation"
        ]

    def _insert(self, source: str, records: list[HeadRecord]) -> None:
        self._conn.executemany(
            """
            INSERT OR REPLACE INTO heads
              (source, kind, name, sha, target_sha, target, origin, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [(source, r.kind, r.name, r.sha, r.target_sha, r.target, r.origin, r.updated_at) for r in records],
        )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> HeadRecord:
        return HeadRecord(
            source=row["source"],
            kind=row["kind"],
            name=row["name"],
            sha=row["sha"],
            target_sha=row["target_sha"] or "",
            target=row["target"] or "",
            origin=row["origin"] or "",
            updated_at=row["updated_at"] or "",
        )
