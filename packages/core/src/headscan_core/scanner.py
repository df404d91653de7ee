"""Discovery orchestration: full scans, single-head lookups and trust checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from rich.console import Console

from headscan_core.model import (
    Branch,
    BranchRevision,
    PullRequest,
    PullRequestRevision,
    Release,
    ReleaseRevision,
    Tag,
    TagRevision,
    build_pull_request_revision,
)
from headscan_core.session import CollectingVisitor, DiscoverySession, MatchAll, NamedVisitor

if TYPE_CHECKING:
    from headscan_core.model import Head, Revision
    from headscan_core.policy import DiscoveryPolicy
    from headscan_core.remote.base import RemoteClient
    from headscan_core.session import Criteria
    from headscan_core.source import SourceIdentity
    from headscan_core.trust import TrustDecision

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class ScanSummary:
    """Result returned by scan: every head of the pass plus what the CLI needs to persist it.

    Decoupled from headscan_store so headscan_core has no dependency on the store layer.
    """

    source: SourceIdentity
    heads: dict = field(default_factory=dict)  # Head -> Revision
    terminated: bool = False
    scanned_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def count(self, kind: str) -> int:
        return sum(1 for head in self.heads if head.kind == kind)


def scan(
    source: SourceIdentity,
    policy: DiscoveryPolicy,
    client: RemoteClient,
    criteria: Criteria | None = None,
    includes: set | None = None,
) -> ScanSummary:
    """Run one full discovery pass and return every head it produced.

    Remote failures propagate; nothing is returned for a failed pass so the
    caller's previous head table stays as it was.
    """
    visitor = CollectingVisitor(includes=includes)
    with DiscoverySession.open(policy, client, source) as session:
        terminated = session.for_each_candidate(criteria or MatchAll(), visitor)

    summary = ScanSummary(source=source, heads=visitor.heads, terminated=terminated)
    console.print(
        f"[cyan]{source.full_name}: {summary.count('branch')} branch(es), "
        f"{summary.count('pull_request')} pull request head(s), {summary.count('tag')} tag(s), "
        f"{summary.count('release')} release(s)[/cyan]"
    )
    return summary


def retrieve_named(
    source: SourceIdentity,
    policy: DiscoveryPolicy,
    client: RemoteClient,
    name: str,
    kind: str | None = None,
) -> Revision | None:
    """Return the revision of the head displayed as name, stopping the pass as soon as it is found.

    kind narrows the match to one head kind, e.g. "release" for a release
    that shares its name with a tag.
    """
    visitor = NamedVisitor(name, kind)
    with DiscoverySession.open(policy, client, source) as session:
        session.for_each_candidate(MatchAll(), visitor)
    return visitor.result


def retrieve_head(source: SourceIdentity, client: RemoteClient, head: Head) -> Revision | None:
    """Return the current revision of a single known head, or None if it no longer exists."""
    owner, repository = source.owner, source.repository
    if isinstance(head, Branch):
        logger.info("Querying the current revision of branch %s", head.name)
        branch = client.fetch_branch(owner, repository, head.name)
        return BranchRevision(head, branch.sha) if branch.sha else None
    if isinstance(head, PullRequest):
        logger.info("Querying the current revision of pull request #%d", head.id)
        pr = client.fetch_pull_request(owner, repository, head.id)
        if pr.state != "open" or pr.base.sha is None or pr.head.sha is None:
            logger.info("Pull request #%d is closed", head.id)
            return None
        return build_pull_request_revision(head, pr.base.sha, pr.head.sha)
    if isinstance(head, Tag):
        tag = client.fetch_tag(owner, repository, head.name)
        return TagRevision(head, tag.sha) if tag.sha else None
    if isinstance(head, Release):
        tag = client.fetch_tag(owner, repository, head.name)
        return ReleaseRevision(head, tag.sha) if tag.sha else None
    raise TypeError(f"Unknown head type: {type(head).__name__}")


def trusted_revision(
    source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient, revision: Revision
) -> TrustDecision:
    """Decide which revision a build of revision.head may read with the repository's privileges.

    Opens its own short session so collaborator names are fetched at most once.
    """
    with DiscoverySession.open(policy, client, source) as session:
        decision = session.trusted_revision(revision)
    if isinstance(revision, PullRequestRevision) and not decision.is_trusted:
        console.print(
            f"[yellow]{revision.head.name} is not trusted; trust-sensitive files are read from "
            f"{revision.target.head.name} ({revision.target.sha[:7]}).[/yellow]"
        )
    return decision
