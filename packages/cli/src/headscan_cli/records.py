"""Mapping between discovered revisions and store records.

The CLI layer owns this mapping: headscan_core has no store knowledge and
headscan_store has no core knowledge. The CLI bridges the two.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from headscan_core.model import PullRequestRevision
from headscan_store.models import HeadRecord

if TYPE_CHECKING:
    from headscan_core.model import Head, Revision


def revision_to_record(source_key: str, revision: Revision, updated_at: str | None = None) -> HeadRecord:
    head = revision.head
    record = HeadRecord(
        source=source_key,
        kind=head.kind,
        name=head.name,
        sha=revision.sha,
        updated_at=updated_at or datetime.now(timezone.utc).isoformat(),
    )
    if isinstance(revision, PullRequestRevision):
        record.target_sha = revision.target_sha
        record.target = head.target.name
        record.origin = str(head.origin)
    return record


def delta_to_changes(
    source_key: str, delta: dict[Head, Revision | None]
) -> tuple[list[HeadRecord], list[tuple[str, str]]]:
    """Split a head delta into store upserts and (kind, name) removals."""
    updated_at = datetime.now(timezone.utc).isoformat()
    upserts = []
    removals = []
    for head, revision in delta.items():
        if revision is None:
            removals.append((head.kind, head.name))
        else:
            upserts.append(revision_to_record(source_key, revision, updated_at))
    return upserts, removals
