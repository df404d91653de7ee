"""Discovery session: one bounded pass over a remote snapshot.

A session binds one policy to one remote repository. It fetches the parts of
the snapshot it needs lazily, at most once, and streams candidate heads through
the policy filters, a caller-supplied criteria and a visitor:

    branches → pull requests → tags → releases

Branches go first so branch filters can consult the pull request list. When
the visitor reports that its query is satisfied the whole pass stops and no
further remote calls are made.

Sessions are single-use and single-threaded. Always close them, preferably by
using the session as a context manager:

    with DiscoverySession.open(policy, client, source) as session:
        session.for_each_candidate(MatchAll(), visitor)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol

from packaging.version import InvalidVersion, Version

from headscan_core.errors import CapabilityError, NotFoundError, SessionClosedError
from headscan_core.model import (
    DEFAULT_ORIGIN,
    Branch,
    BranchRevision,
    Origin,
    PullRequest,
    Release,
    ReleaseRevision,
    Tag,
    TagRevision,
    build_pull_request_head,
    build_pull_request_revision,
    sorted_strategies,
)
from headscan_core.trust import is_trusted, resolve_trusted

if TYPE_CHECKING:
    from collections.abc import Iterator

    from headscan_core.model import CheckoutStrategy, Head, Revision
    from headscan_core.policy import DiscoveryPolicy
    from headscan_core.remote.base import RemoteClient
    from headscan_core.remote.models import RemoteBranch, RemotePullRequest, RemoteRepository, RemoteTag
    from headscan_core.source import SourceIdentity
    from headscan_core.trust import TrustDecision

logger = logging.getLogger(__name__)

# Oldest server versions that expose the tag listing, and collaborator listing
# to callers without admin rights on the repository.
TAGS_MIN_VERSION = Version("1.9.0")
COLLABORATORS_MIN_VERSION = Version("1.13.0")


class Criteria(Protocol):
    def matches(self, head: Head, revision: Revision) -> bool: ...


class Visitor(Protocol):
    """Receives every head that survives filters and criteria.

    record() returns True when the visitor's query is satisfied and the pass
    should stop. ``includes`` optionally narrows the pass to a set of heads;
    None means every head is of interest.
    """

    includes: set[Head] | None

    def record(self, head: Head, revision: Revision) -> bool: ...


class MatchAll:
    def matches(self, head: Head, revision: Revision) -> bool:
        return True


class CollectingVisitor:
    """Collects every head → revision pair of a pass."""

    def __init__(self, includes: set[Head] | None = None):
        self.includes = includes
        self.heads: dict[Head, Revision] = {}

    def record(self, head: Head, revision: Revision) -> bool:
        self.heads[head] = revision
        return self.includes is not None and all(h in self.heads for h in self.includes)


class NamedVisitor:
    """Stops the pass as soon as a head with the given display name is seen.

    A tag and a release can share a name; pass kind ("tag", "release", ...)
    to reach a specific one. Without it the first head in pass order wins.
    """

    includes = None

    def __init__(self, name: str, kind: str | None = None):
        self.name = name
        self.kind = kind
        self.result: Revision | None = None

    def record(self, head: Head, revision: Revision) -> bool:
        if head.name != self.name:
            return False
        if self.kind is not None and head.kind != self.kind:
            return False
        self.result = revision
        return True


def _millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


class DiscoverySession:
    def __init__(self, policy: DiscoveryPolicy, client: RemoteClient, source: SourceIdentity):
        self.policy = policy
        self.client = client
        self.source = source
        self._closed = False
        self._repository: RemoteRepository | None = None
        self._server_version: Version | None = None
        self._server_version_fetched = False
        self._branches: list[RemoteBranch] | None = None
        self._pull_requests: list[RemotePullRequest] | None = None
        self._tag_stream: Iterator[RemoteTag] | None = None
        self._collaborators: frozenset[str] | None = None

    @classmethod
    def open(cls, policy: DiscoveryPolicy, client: RemoteClient, source: SourceIdentity) -> DiscoverySession:
        return cls(policy, client, source)

    def __enter__(self) -> DiscoverySession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Policy queries                                                       #
    # ------------------------------------------------------------------ #

    def is_want_branches(self) -> bool:
        return self.policy.want_branches

    def is_want_tags(self) -> bool:
        return self.policy.want_tags

    def is_want_origin_prs(self) -> bool:
        return self.policy.want_origin_prs

    def is_want_fork_prs(self) -> bool:
        return self.policy.want_fork_prs

    def is_want_prs(self) -> bool:
        return self.policy.want_prs

    def is_want_releases(self) -> bool:
        return self.policy.want_releases

    def strategies_for(self, fork: bool) -> frozenset[CheckoutStrategy]:
        return self.policy.strategies_for(fork)

    # ------------------------------------------------------------------ #
    # Lazy snapshot                                                        #
    # ------------------------------------------------------------------ #

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"Discovery session for {self.source.full_name} is closed")

    @property
    def repository(self) -> RemoteRepository:
        self._check_open()
        if self._repository is None:
            logger.info("Looking up repository %s", self.source.full_name)
            self._repository = self.client.fetch_repository(self.source.owner, self.source.repository)
        return self._repository

    @property
    def server_version(self) -> Version | None:
        """Parsed server version, or None for servers that do not report one."""
        self._check_open()
        if not self._server_version_fetched:
            raw = self.client.fetch_server_version()
            self._server_version_fetched = True
            if raw is not None:
                try:
                    # Build metadata such as "+dev-12-gabc" is not a release marker.
                    self._server_version = Version(raw.split("+", 1)[0])
                except InvalidVersion:
                    logger.warning("Unrecognised server version %r; assuming an old server", raw)
                    self._server_version = Version("0")
        return self._server_version

    def supports(self, minimum: Version) -> bool:
        version = self.server_version
        return version is None or version >= minimum

    @property
    def branches(self) -> list[RemoteBranch]:
        self._check_open()
        if self._branches is None:
            self._branches = list(self.client.fetch_branches(self.source.owner, self.source.repository))
        return self._branches

    @property
    def pull_requests(self) -> list[RemotePullRequest]:
        """Open pull requests, or an empty list when pull requests are not discovered."""
        self._check_open()
        if self._pull_requests is None:
            if not self.is_want_prs() or self.repository.mirror:
                self._pull_requests = []
            else:
                self._pull_requests = list(
                    self.client.fetch_pull_requests(self.source.owner, self.source.repository, state="open")
                )
        return self._pull_requests

    def tags(self) -> Iterator[RemoteTag]:
        """Stream the tag listing. The stream is opened once and closed with the session."""
        self._check_open()
        if self._tag_stream is None:
            self._tag_stream = iter(self.client.fetch_tags(self.source.owner, self.source.repository))
        return self._tag_stream

    @property
    def collaborator_names(self) -> frozenset[str]:
        """Collaborator logins, fetched once.

        Empty when the server will not list them for this caller, which makes
        every fork untrusted for the rest of the session.
        """
        self._check_open()
        if self._collaborators is None:
            self._collaborators = self._fetch_collaborators()
        return self._collaborators

    def _fetch_collaborators(self) -> frozenset[str]:
        if not self.repository.admin and not self.supports(COLLABORATORS_MIN_VERSION):
            message = (
                f"Server version {self.server_version} requires admin rights on "
                f"{self.source.full_name} to list collaborators (or version {COLLABORATORS_MIN_VERSION}+)"
            )
            if self.policy.collaborator_listing == "fail":
                raise CapabilityError(message)
            logger.warning("%s; fork pull requests will not be trusted", message)
            return frozenset()
        return frozenset(self.client.fetch_collaborators(self.source.owner, self.source.repository))

    # ------------------------------------------------------------------ #
    # Trust                                                                #
    # ------------------------------------------------------------------ #

    def is_trusted(self, head: Head) -> bool:
        return is_trusted(self, self.policy, head)

    def trusted_revision(self, revision: Revision) -> TrustDecision:
        return resolve_trusted(self, self.policy, revision)

    # ------------------------------------------------------------------ #
    # Enumeration                                                          #
    # ------------------------------------------------------------------ #

    def for_each_candidate(self, criteria: Criteria | None, visitor: Visitor) -> bool:
        """Stream every candidate head to visitor. Return True if the visitor stopped the pass early."""
        self._check_open()
        if self.repository.empty:
            logger.info("Repository %s is empty", self.source.full_name)
            return False

        requested = _Requested(getattr(visitor, "includes", None))
        for step in (self._visit_branches, self._visit_pull_requests, self._visit_tags, self._visit_releases):
            if step(criteria, visitor, requested):
                return True
        return False

    def is_excluded(self, head: Head) -> bool:
        """Return True if a policy filter drops head from this snapshot.

        Filters only apply to branches, and only while pull requests are
        discovered on a repository that is not a mirror.
        """
        self._check_open()
        if not isinstance(head, Branch) or not self.is_want_prs() or not self.policy.filters:
            return False
        if self.repository.mirror:
            return False
        for head_filter in self.policy.filters:
            if head_filter.is_excluded(self, head):
                logger.debug("    %s excluded by %s", head.name, type(head_filter).__name__)
                return True
        return False

    def _process(self, head: Head, revision: Revision, criteria: Criteria | None, visitor: Visitor) -> bool:
        if self.is_excluded(head):
            return False
        if criteria is not None and not criteria.matches(head, revision):
            logger.debug("    %s does not meet criteria", head.name)
            return False
        logger.debug("    %s met criteria", head.name)
        return bool(visitor.record(head, revision))

    def _visit_branches(self, criteria, visitor, requested) -> bool:
        if not self.is_want_branches() or requested.none_of(requested.branches):
            return False
        logger.info("Checking branches...")
        count = 0
        for b in self.branches:
            if b is None or b.sha is None:
                logger.debug("Skipping branch without a commit")
                continue
            if not requested.wants(requested.branches, b.name):
                continue
            count += 1
            head = Branch(b.name)
            if self._process(head, BranchRevision(head, b.sha), criteria, visitor):
                logger.info("%d branches were processed (query completed)", count)
                return True
        logger.info("%d branches were processed", count)
        return False

    def _visit_pull_requests(self, criteria, visitor, requested) -> bool:
        if not self.is_want_prs() or requested.none_of(requested.pull_requests):
            return False
        if not (self.strategies_for(fork=True) or self.strategies_for(fork=False)):
            return False
        if self.repository.mirror:
            logger.info("Ignoring pull requests as repository %s is a mirror", self.source.full_name)
            return False
        logger.info("Checking pull requests...")
        count = 0
        for pr in self.pull_requests:
            if pr is None or not pr.head_is_complete or pr.base.ref is None or pr.base.sha is None:
                logger.debug("Skipping pull request with incomplete head or base")
                continue
            if not requested.wants(requested.pull_requests, pr.number):
                continue
            count += 1
            for head, revision in self._pull_request_candidates(pr):
                if self._process(head, revision, criteria, visitor):
                    logger.info("%d pull requests were processed (query completed)", count)
                    return True
        logger.info("%d pull requests were processed", count)
        return False

    def _pull_request_candidates(self, pr: RemotePullRequest):
        fork = not self.source.is_same_repository(pr.head.owner, pr.head.repository)
        origin = Origin.of_fork(pr.head.owner, pr.head.repository) if fork else DEFAULT_ORIGIN
        strategies = sorted_strategies(self.strategies_for(fork))
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
            yield head, build_pull_request_revision(head, pr.base.sha, pr.head.sha)

    def _visit_tags(self, criteria, visitor, requested) -> bool:
        if not self.is_want_tags() or requested.none_of(requested.tags):
            return False
        if not self.supports(TAGS_MIN_VERSION):
            logger.info(
                "Ignoring tags as server version %s predates tag support (requires %s)",
                self.server_version,
                TAGS_MIN_VERSION,
            )
            return False
        logger.info("Checking tags...")
        count = 0
        for t in self.tags():
            if t is None or t.sha is None:
                logger.debug("Skipping tag without a commit")
                continue
            if not requested.wants(requested.tags, t.name):
                continue
            count += 1
            head = Tag(t.name, self.tag_timestamp(t))
            if self._process(head, TagRevision(head, t.sha), criteria, visitor):
                logger.info("%d tags were processed (query completed)", count)
                return True
        logger.info("%d tags were processed", count)
        return False

    def tag_timestamp(self, tag: RemoteTag) -> int:
        """Best-effort tag timestamp in epoch milliseconds.

        Annotated tags use the annotation date; otherwise, or when the
        annotation cannot be found, the tagged commit's committer date; 0
        when neither is available.
        """
        owner, repository = self.source.owner, self.source.repository
        if tag.id and tag.id != tag.sha:
            try:
                annotation = self.client.fetch_annotated_tag(owner, repository, tag.id)
                if annotation.tagged_at is not None:
                    return _millis(annotation.tagged_at)
            except NotFoundError:
                logger.debug("Annotation %s of tag %s not found; using commit date", tag.id, tag.name)
        try:
            commit = self.client.fetch_commit(owner, repository, tag.sha)
            if commit.committed_at is not None:
                return _millis(commit.committed_at)
        except NotFoundError:
            logger.debug("Commit %s of tag %s not found; timestamp unknown", tag.sha, tag.name)
        return 0

    def _visit_releases(self, criteria, visitor, requested) -> bool:
        if not self.is_want_releases() or requested.none_of(requested.releases):
            return False
        logger.info("Checking releases...")
        owner, repository = self.source.owner, self.source.repository
        count = 0
        for r in self.client.fetch_releases(owner, repository):
            if r is None:
                continue
            if r.draft and not self.policy.include_draft_releases:
                logger.debug("Skipping draft release %s", r.tag_name)
                continue
            if r.prerelease and not self.policy.include_prereleases:
                logger.debug("Skipping pre-release %s", r.tag_name)
                continue
            if not requested.wants(requested.releases, r.tag_name):
                continue
            try:
                tag = self.client.fetch_tag(owner, repository, r.tag_name)
            except NotFoundError:
                logger.debug("Skipping release %s whose tag no longer exists", r.tag_name)
                continue
            if tag.sha is None:
                logger.debug("Skipping release %s whose tag has no commit", r.tag_name)
                continue
            count += 1
            head = Release(r.tag_name, r.id)
            if self._process(head, ReleaseRevision(head, tag.sha), criteria, visitor):
                logger.info("%d releases were processed (query completed)", count)
                return True
        logger.info("%d releases were processed", count)
        return False

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Release the snapshot and any open stream. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        stream = self._tag_stream
        self._branches = None
        self._pull_requests = None
        self._tag_stream = None
        self._collaborators = None
        close = getattr(stream, "close", None)
        if callable(close):
            close()


class _Requested:
    """Head names a visitor narrowed the pass to, split per kind."""

    def __init__(self, includes: set[Head] | None):
        self.scoped = includes is not None
        self.branches: set[str] = set()
        self.pull_requests: set[int] = set()
        self.tags: set[str] = set()
        self.releases: set[str] = set()
        for head in includes or ():
            if isinstance(head, Branch):
                self.branches.add(head.name)
            elif isinstance(head, PullRequest):
                self.pull_requests.add(head.id)
            elif isinstance(head, Tag):
                self.tags.add(head.name)
            elif isinstance(head, Release):
                self.releases.add(head.name)

    def none_of(self, names: set) -> bool:
        return self.scoped and not names

    def wants(self, names: set, name) -> bool:
        return not self.scoped or name in names
