"""Abstract store interface.

The head table of every configured source lives behind this interface. The
CLI depends on BaseStore, not on a concrete backend, so backends are
swappable without touching CLI code.

Writers coordinate through a per-source generation counter. Every successful
write bumps it by one; a writer that passes ``expected_generation`` only
succeeds if nobody wrote in between, otherwise StaleGenerationError is raised
and the table is left untouched. Passing None skips the check.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from headscan_store.models import HeadRecord


class StaleGenerationError(Exception):
    """Raised when a write was based on an outdated view of the head table."""

    def __init__(self, source: str, expected: int, actual: int):
        super().__init__(f"Head table of {source} is at generation {actual}, expected {expected}")
        self.source = source
        self.expected = expected
        self.actual = actual


class BaseStore(ABC):
    """Pluggable persistence layer for head tables.

    Implementations must be safe to call from several threads, since a full
    scan and webhook deliveries for the same source may race.
    """

    @abstractmethod
    def list_heads(self, source: str, kind: str | None = None) -> list[HeadRecord]:
        """Return the head table of a source, optionally filtered by kind.

        Returns an empty list for an unknown source, never raises.
        """

    @abstractmethod
    def generation(self, source: str) -> int:
        """Return the current generation of a source's head table (0 if never written)."""

    @abstractmethod
    def replace(self, source: str, records: Iterable[HeadRecord], expected_generation: int | None = None) -> int:
        """Replace the whole head table of a source after a full scan. Returns the new generation."""

    @abstractmethod
    def apply_delta(
        self,
        source: str,
        upserts: Iterable[HeadRecord],
        removals: Iterable[tuple[str, str]] = (),
        expected_generation: int | None = None,
    ) -> int:
        """Insert or update records and delete (kind, name) keys in one step. Returns the new generation."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional: subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
