"""MemoryStore: process-local head tables, used by the event command and tests."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from headscan_store.base import BaseStore, StaleGenerationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from headscan_store.models import HeadRecord

logger = logging.getLogger(__name__)


class MemoryStore(BaseStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._tables: dict[str, dict[tuple[str, str], HeadRecord]] = {}
        self._generations: dict[str, int] = {}

    def list_heads(self, source: str, kind: str | None = None) -> list[HeadRecord]:
        with self._lock:
            records = list(self._tables.get(source, {}).values())
        if kind is not None:
            records = [r for r in records if r.kind == kind]
        return sorted(records, key=lambda r: r.key)

    def generation(self, source: str) -> int:
        with self._lock:
            return self._generations.get(source, 0)

    def _check(self, source: str, expected_generation: int | None) -> None:
        actual = self._generations.get(source, 0)
        if expected_generation is not None and expected_generation != actual:
            raise StaleGenerationError(source, expected_generation, actual)

    def replace(self, source: str, records: Iterable[HeadRecord], expected_generation: int | None = None) -> int:
        with self._lock:
            self._check(source, expected_generation)
            self._tables[source] = {r.key: r for r in records}
            self._generations[source] = self._generations.get(source, 0) + 1
            return self._generations[source]

    def apply_delta(
        self,
        source: str,
        upserts: Iterable[HeadRecord],
        removals: Iterable[tuple[str, str]] = (),
        expected_generation: int | None = None,
    ) -> int:
        with self._lock:
            self._check(source, expected_generation)
            table = dict(self._tables.get(source, {}))
            for key in removals:
                table.pop(tuple(key), None)
            for record in upserts:
                table[record.key] = record
            self._tables[source] = table
            self._generations[source] = self._generations.get(source, 0) + 1
            logger.debug("Head table of %s now at generation %d", source, self._generations[source])
            return self._generations[source]
