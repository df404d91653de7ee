"""Typed repository events, as handed over by the webhook ingestion layer."""

from __future__ import annotations

from dataclasses import dataclass

from headscan_core.remote.models import RemotePullRequest, RemoteRelease


@dataclass(frozen=True)
class EventRepository:
    """The repository an event claims to be about."""

    owner: str
    name: str
    html_url: str = ""


@dataclass(frozen=True)
class PushEvent:
    repository: EventRepository
    ref: str
    before: str | None = None
    after: str | None = None

    kind = "push"


@dataclass(frozen=True)
class CreateEvent:
    repository: EventRepository
    ref: str
    ref_type: str  # "branch" | "tag"
    sha: str

    kind = "create"


@dataclass(frozen=True)
class DeleteEvent:
    repository: EventRepository
    ref: str
    ref_type: str  # "branch" | "tag"

    kind = "delete"


@dataclass(frozen=True)
class PullRequestEvent:
    repository: EventRepository
    action: str  # "opened" | "reopened" | "closed" | "synchronized" | ...
    number: int
    pull_request: RemotePullRequest | None

    kind = "pull_request"


@dataclass(frozen=True)
class ReleaseEvent:
    repository: EventRepository
    action: str  # "published" | "updated" | "deleted"
    release: RemoteRelease | None

    kind = "release"


@dataclass(frozen=True)
class RepositoryEvent:
    """Repository created, deleted or updated: a source-level signal, not a head delta."""

    repository: EventRepository
    action: str

    kind = "repository"
