"""Translate one repository event into an incremental head → revision delta.

translate() keeps no state between calls, so concurrent and repeated
deliveries of the same event are safe; applying the returned delta to a shared
head table is the caller's job and needs the caller's own synchronisation.

A value of None in the delta is a tombstone: the head no longer exists.

The delta agrees with what the next full discovery pass would report for the
heads the event touches: the same want flags, checkout strategies, branch
filters and mirror rule apply. Where the event alone cannot decide, such as
whether a pushed branch is also an origin pull request, the translator asks
the remote through a short discovery session. Tombstones never need a lookup.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from headscan_core.errors import NotFoundError
from headscan_core.events.models import RepositoryEvent
from headscan_core.model import (
    DEFAULT_ORIGIN,
    Branch,
    BranchRevision,
    Origin,
    Release,
    ReleaseRevision,
    Tag,
    TagRevision,
    build_pull_request_head,
    build_pull_request_revision,
    sorted_strategies,
)
from headscan_core.session import DiscoverySession

if TYPE_CHECKING:
    from headscan_core.events.models import CreateEvent, DeleteEvent, PullRequestEvent, PushEvent, ReleaseEvent
    from headscan_core.model import Head, Revision
    from headscan_core.policy import DiscoveryPolicy
    from headscan_core.remote.base import RemoteClient
    from headscan_core.source import SourceIdentity

logger = logging.getLogger(__name__)

Delta = dict  # dict[Head, Revision | None]

CREATED = "created"
UPDATED = "updated"
REMOVED = "removed"

_HEADS_PREFIX = "refs/heads/"
_TAGS_PREFIX = "refs/tags/"


def is_absent_sha(sha: str | None) -> bool:
    """True for a missing sha or the all-zero sentinel meaning "no commit"."""
    return not sha or not sha.strip("0")


def strip_ref(ref: str) -> str:
    for prefix in (_HEADS_PREFIX, _TAGS_PREFIX):
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def _now_millis() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------- #
# Event types                                                             #
# ---------------------------------------------------------------------- #


def push_event_type(event: PushEvent) -> str:
    if is_absent_sha(event.before):
        return CREATED
    if is_absent_sha(event.after):
        return REMOVED
    return UPDATED


def pull_request_event_type(event: PullRequestEvent) -> str:
    if event.action == "opened":
        return CREATED
    if event.action == "closed":
        return REMOVED
    return UPDATED


def event_type(event) -> str:
    """Classify an event as created, updated or removed."""
    if event.kind == "push":
        return push_event_type(event)
    if event.kind == "pull_request":
        return pull_request_event_type(event)
    if event.kind == "delete":
        return REMOVED
    if event.kind == "release" and event.action == "deleted":
        return REMOVED
    if event.kind == "repository":
        return source_event_type(event)
    return CREATED


def source_event_type(event: RepositoryEvent) -> str:
    if event.action == "created":
        return CREATED
    if event.action == "deleted":
        return REMOVED
    return UPDATED


# ---------------------------------------------------------------------- #
# Per-kind translators                                                    #
# ---------------------------------------------------------------------- #


def _branch_delta(
    head: Branch, revision: BranchRevision, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient
) -> Delta:
    # Only origin pull request branches can be filtered, so only ask when filters are active.
    if policy.filters and policy.want_prs:
        with DiscoverySession.open(policy, client, source) as session:
            if session.is_excluded(head):
                return {}
    return {head: revision}


def translate_push(event: PushEvent, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient) -> Delta:
    # Tags arrive through create/delete events.
    if not policy.want_branches or event.ref.startswith(_TAGS_PREFIX):
        return {}
    head = Branch(strip_ref(event.ref))
    if is_absent_sha(event.after):
        return {head: None}
    return _branch_delta(head, BranchRevision(head, event.after), source, policy, client)


def translate_create(
    event: CreateEvent, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient
) -> Delta:
    name = strip_ref(event.ref)
    if event.ref_type == "tag":
        if not policy.want_tags:
            return {}
        tag = Tag(name, _now_millis())
        return {tag: TagRevision(tag, event.sha)}
    if event.ref_type == "branch":
        if not policy.want_branches:
            return {}
        branch = Branch(name)
        return _branch_delta(branch, BranchRevision(branch, event.sha), source, policy, client)
    logger.debug("Ignoring create event for ref type %r", event.ref_type)
    return {}


def translate_delete(
    event: DeleteEvent, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient
) -> Delta:
    name = strip_ref(event.ref)
    if event.ref_type == "tag":
        return {Tag(name, _now_millis()): None} if policy.want_tags else {}
    if event.ref_type == "branch":
        return {Branch(name): None} if policy.want_branches else {}
    logger.debug("Ignoring delete event for ref type %r", event.ref_type)
    return {}


def translate_pull_request(
    event: PullRequestEvent, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient
) -> Delta:
    pr = event.pull_request
    if pr is None or not pr.head_is_complete or pr.base.ref is None or pr.base.sha is None:
        logger.debug("Ignoring pull request event #%s with incomplete head or base", event.number)
        return {}

    closed = event.action == "closed"
    if not closed and pr.state != "open":
        return {}

    fork = not source.is_same_repository(pr.head.owner, pr.head.repository)
    strategies = sorted_strategies(policy.strategies_for(fork))
    if not strategies:
        return {}
    if not closed and client.fetch_repository(source.owner, source.repository).mirror:
        logger.debug("Ignoring pull request #%d as repository %s is a mirror", pr.number, source.full_name)
        return {}

    origin = Origin.of_fork(pr.head.owner, pr.head.repository) if fork else DEFAULT_ORIGIN
    result: Delta = {}
    for strategy in strategies:
        head = build_pull_request_head(
            number=pr.number,
            target_ref=pr.base.ref,
            strategy=strategy,
            strategy_count=len(strategies),
            origin=origin,
            origin_owner=pr.head.owner,
            origin_repository=pr.head.repository,
            origin_ref=pr.head.ref,
        )
        result[head] = None if closed else build_pull_request_revision(head, pr.base.sha, pr.head.sha)
    return result


def translate_release(
    event: ReleaseEvent, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient
) -> Delta:
    release = event.release
    if not policy.want_releases or release is None or not release.tag_name:
        return {}
    if release.draft:
        logger.debug("Ignoring draft release %s", release.tag_name)
        return {}
    if release.prerelease and not policy.include_prereleases:
        return {}

    head = Release(release.tag_name, release.id)
    if event.action == "deleted":
        return {head: None}
    try:
        tag = client.fetch_tag(source.owner, source.repository, release.tag_name)
    except NotFoundError:
        logger.debug("Ignoring release %s whose tag does not exist", release.tag_name)
        return {}
    if tag.sha is None:
        return {}
    return {head: ReleaseRevision(head, tag.sha)}


# Event kind → translator. Repository events are routed to source listeners.
TRANSLATORS = {
    "push": translate_push,
    "create": translate_create,
    "delete": translate_delete,
    "pull_request": translate_pull_request,
    "release": translate_release,
}


def is_for_source(event, source: SourceIdentity) -> bool:
    repo = event.repository
    return source.matches(repo.owner, repo.name, repo.html_url)


def translate(
    event, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient
) -> dict[Head, Revision | None]:
    """Return the head delta event implies for source, or {} if it is not for source.

    client serves the lookups the event cannot answer by itself. Remote
    failures propagate.
    """
    if isinstance(event, RepositoryEvent):
        return {}
    if not is_for_source(event, source):
        logger.debug(
            "%s event for %s/%s does not match %s",
            event.kind,
            event.repository.owner,
            event.repository.name,
            source.full_name,
        )
        return {}
    translator = TRANSLATORS.get(event.kind)
    if translator is None:
        return {}
    return translator(event, source, policy, client)
