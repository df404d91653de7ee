"""Plain data returned by a RemoteClient.

Decoupled from any HTTP library so discovery logic and tests never touch
SDK objects. Clients map their SDK types onto these before returning.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RemoteRepository:
    owner: str
    name: str
    html_url: str = ""
    default_branch: str = "main"
    empty: bool = False
    mirror: bool = False
    archived: bool = False
    admin: bool = False  # the authenticated caller administers this repository


@dataclass
class RemoteBranch:
    name: str
    sha: str | None


@dataclass
class RemoteTag:
    """A tag as listed by the remote.

    ``id`` is the sha of the tag object. It differs from ``sha`` (the commit
    the tag points at) only for annotated tags.
    """

    name: str
    id: str | None
    sha: str | None


@dataclass
class RemoteAnnotatedTag:
    sha: str
    tagged_at: datetime | None = None


@dataclass
class RemoteCommit:
    sha: str
    committed_at: datetime | None = None


@dataclass
class RemotePullRef:
    """One side of a pull request. Owner/repository are None when deleted."""

    ref: str | None
    sha: str | None
    owner: str | None
    repository: str | None


@dataclass
class RemotePullRequest:
    number: int
    state: str  # "open" | "closed"
    base: RemotePullRef
    head: RemotePullRef
    title: str = ""

    @property
    def is_origin(self) -> bool:
        """True if both sides live in the same repository (case-insensitive)."""
        if None in (self.base.owner, self.base.repository, self.head.owner, self.head.repository):
            return False
        return (
            self.base.owner.lower() == self.head.owner.lower()
            and self.base.repository.lower() == self.head.repository.lower()
        )

    @property
    def head_is_complete(self) -> bool:
        return None not in (self.head.ref, self.head.sha, self.head.owner, self.head.repository)


@dataclass
class RemoteRelease:
    id: int
    tag_name: str
    draft: bool = False
    prerelease: bool = False
    title: str = ""
