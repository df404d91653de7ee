"""No-op store, the default when no store is configured.

Heads are printed but not persisted anywhere. Using a NoOpStore rather than
None lets the CLI always call store.replace() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from headscan_store.base import BaseStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from headscan_store.models import HeadRecord


class NoOpStore(BaseStore):
    """Silently discards all records, zero configuration required.

    Teams that want the head table kept between runs switch to SQLiteStore
    (.headscan.yml: store: sqlite).
    """

    def list_heads(self, source: str, kind: str | None = None) -> list[HeadRecord]:
        return []

    def generation(self, source: str) -> int:
        return 0

    def replace(self, source: str, records: Iterable[HeadRecord], expected_generation: int | None = None) -> int:
        return 0

    def apply_delta(
        self,
        source: str,
        upserts: Iterable[HeadRecord],
        removals: Iterable[tuple[str, str]] = (),
        expected_generation: int | None = None,
    ) -> int:
        return 0
