"""Head table data models.

Decoupled from headscan_core so the store layer can be used independently
and headscan_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class HeadRecord:
    """One row of a source's head table.

    Created by the CLI layer from a discovered head and its revision.
    A record is identified by (source, kind, name): a release and the tag
    it points at share a name but are different heads.
    """

    source: str  # lowercased server/owner/repository key
    kind: str  # "branch" | "tag" | "pull_request" | "release"
    name: str  # display name, e.g. "main", "PR-7-merge", "v1.0"
    sha: str  # commit the head points at (origin side for pull requests)
    target_sha: str = ""  # pull requests only: target branch commit
    target: str = ""  # pull requests only: target branch name
    origin: str = ""  # pull requests only: "default" or "fork:owner/repo"
    updated_at: str = ""  # ISO-8601 UTC timestamp

    @property
    def key(self) -> tuple[str, str]:
        return self.kind, self.name
