"""Decode webhook JSON bodies into typed events.

A thin ingestion adapter: the HTTP endpoint hands over the event kind (the
``X-Gitea-Event`` / ``X-GitHub-Event`` header) and the parsed JSON body.
Unknown kinds return None. Missing optional fields decode to None so the
translator can skip malformed items instead of failing.
"""

from __future__ import annotations

import logging

from headscan_core.events.models import (
    CreateEvent,
    DeleteEvent,
    EventRepository,
    PullRequestEvent,
    PushEvent,
    ReleaseEvent,
    RepositoryEvent,
)
from headscan_core.remote.models import RemotePullRef, RemotePullRequest, RemoteRelease

logger = logging.getLogger(__name__)


def _login(owner: dict | None) -> str | None:
    # Gitea calls it "username", GitHub "login"; Gitea also sends "login".
    if not owner:
        return None
    return owner.get("username") or owner.get("login")


def _repository(body: dict) -> EventRepository:
    repo = body.get("repository") or {}
    return EventRepository(
        owner=_login(repo.get("owner")) or "",
        name=repo.get("name") or "",
        html_url=repo.get("html_url") or "",
    )


def _pull_ref(side: dict | None) -> RemotePullRef:
    side = side or {}
    repo = side.get("repo") or {}
    return RemotePullRef(
        ref=side.get("ref"),
        sha=side.get("sha"),
        owner=_login(repo.get("owner")),
        repository=repo.get("name"),
    )


def _pull_request(body: dict) -> RemotePullRequest | None:
    pr = body.get("pull_request")
    if not pr:
        return None
    return RemotePullRequest(
        number=pr.get("number") or body.get("number") or 0,
        state=pr.get("state") or "",
        base=_pull_ref(pr.get("base")),
        head=_pull_ref(pr.get("head")),
        title=pr.get("title") or "",
    )


def _release(body: dict) -> RemoteRelease | None:
    release = body.get("release")
    if not release:
        return None
    return RemoteRelease(
        id=release.get("id") or 0,
        tag_name=release.get("tag_name") or "",
        draft=bool(release.get("draft")),
        prerelease=bool(release.get("prerelease")),
        title=release.get("name") or "",
    )


def _push(body: dict) -> PushEvent:
    return PushEvent(
        repository=_repository(body),
        ref=body.get("ref") or "",
        before=body.get("before"),
        after=body.get("after"),
    )


def _create(body: dict) -> CreateEvent:
    return CreateEvent(
        repository=_repository(body),
        ref=body.get("ref") or "",
        ref_type=body.get("ref_type") or "",
        sha=body.get("sha") or "",
    )


def _delete(body: dict) -> DeleteEvent:
    return DeleteEvent(repository=_repository(body), ref=body.get("ref") or "", ref_type=body.get("ref_type") or "")


def _pull(body: dict) -> PullRequestEvent:
    pr = _pull_request(body)
    return PullRequestEvent(
        repository=_repository(body),
        action=body.get("action") or "",
        number=body.get("number") or (pr.number if pr else 0),
        pull_request=pr,
    )


def _release_event(body: dict) -> ReleaseEvent:
    return ReleaseEvent(repository=_repository(body), action=body.get("action") or "", release=_release(body))


def _repository_event(body: dict) -> RepositoryEvent:
    return RepositoryEvent(repository=_repository(body), action=body.get("action") or "")


DECODERS = {
    "push": _push,
    "create": _create,
    "delete": _delete,
    "pull_request": _pull,
    "release": _release_event,
    "repository": _repository_event,
}


def decode_event(kind: str, body: dict):
    """Return the typed event for kind, or None if headscan does not handle it."""
    decoder = DECODERS.get(kind)
    if decoder is None:
        logger.debug("Ignoring unsupported event kind %r", kind)
        return None
    return decoder(body)
