"""Trust authorities and resolution of the revision that is safe to build.

An untrusted pull request must never have its own content interpreted with
the target repository's privileges. resolve_trusted() enforces that by
swapping in the target branch revision for trust-sensitive reads (pipeline
definitions and the like) while the pull request revision stays the nominal
revision under test.

Authorities are bound per head kind in the discovery policy:

    branch, tag, release, origin_pull_request  → DefaultOriginTrust
    fork_pull_request                          → TrustNobody | TrustContributors | TrustEveryone

A kind with no binding is untrusted.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from headscan_core.model import PullRequest, PullRequestRevision

if TYPE_CHECKING:
    from headscan_core.model import Head, Revision
    from headscan_core.policy import DiscoveryPolicy
    from headscan_core.session import DiscoverySession

logger = logging.getLogger(__name__)


def authority_key(head: Head) -> str:
    """Return the policy binding key for head."""
    if isinstance(head, PullRequest):
        return "fork_pull_request" if head.is_fork else "origin_pull_request"
    return head.kind


class TrustAuthority(ABC):
    """Decides whether a head's content may run with the repository's privileges."""

    name: str = ""

    @abstractmethod
    def applies_to(self, head: Head) -> bool:
        """Return True if this authority can judge head at all."""

    @abstractmethod
    def check_trusted(self, request: DiscoverySession, head: Head) -> bool:
        """Judge a head this authority applies to."""

    def is_trusted(self, request: DiscoverySession, head: Head) -> bool:
        return self.applies_to(head) and self.check_trusted(request, head)


@dataclass(frozen=True)
class DefaultOriginTrust(TrustAuthority):
    """Same-repository content: branches, tags, releases and origin pull requests."""

    name = "default-origin"

    def applies_to(self, head: Head) -> bool:
        if isinstance(head, PullRequest):
            return not head.is_fork
        return True

    def check_trusted(self, request: DiscoverySession, head: Head) -> bool:
        return True


class _ForkAuthority(TrustAuthority):
    def applies_to(self, head: Head) -> bool:
        return isinstance(head, PullRequest) and head.is_fork


@dataclass(frozen=True)
class TrustNobody(_ForkAuthority):
    name = "nobody"

    def check_trusted(self, request: DiscoverySession, head: Head) -> bool:
        return False


@dataclass(frozen=True)
class TrustContributors(_ForkAuthority):
    """Trust forks owned by a collaborator of the target repository."""

    name = "contributors"

    def check_trusted(self, request: DiscoverySession, head: Head) -> bool:
        return head.origin_owner in request.collaborator_names


@dataclass(frozen=True)
class TrustEveryone(_ForkAuthority):
    name = "everyone"

    def check_trusted(self, request: DiscoverySession, head: Head) -> bool:
        return True


FORK_AUTHORITIES: dict[str, type[TrustAuthority]] = {
    TrustNobody.name: TrustNobody,
    TrustContributors.name: TrustContributors,
    TrustEveryone.name: TrustEveryone,
}


def fork_authority(name: str) -> TrustAuthority:
    try:
        return FORK_AUTHORITIES[name]()
    except KeyError:
        raise ValueError(f"Unknown trust level: {name!r}. Choose one of {sorted(FORK_AUTHORITIES)}.")


def is_trusted(request: DiscoverySession, policy: DiscoveryPolicy, head: Head) -> bool:
    authority = policy.authorities.get(authority_key(head))
    if authority is None:
        logger.debug("No trust authority bound for %s; treating %s as untrusted", authority_key(head), head.name)
        return False
    return authority.is_trusted(request, head)


@dataclass(frozen=True)
class TrustDecision:
    """Outcome of trust resolution for one revision.

    ``nominal`` is the revision reported as being tested. ``trusted`` is the
    revision whose content may be read with the repository's privileges.
    """

    nominal: Revision
    trusted: Revision
    is_trusted: bool


def resolve_trusted(request: DiscoverySession, policy: DiscoveryPolicy, revision: Revision) -> TrustDecision:
    """Pick the revision that is safe to interpret for a build of revision.head."""
    head = revision.head
    if not isinstance(revision, PullRequestRevision):
        trusted = is_trusted(request, policy, head)
        return TrustDecision(nominal=revision, trusted=revision, is_trusted=trusted)

    if is_trusted(request, policy, head):
        return TrustDecision(nominal=revision, trusted=revision.origin, is_trusted=True)

    logger.info(
        "%s from %s is not trusted; using %s@%s for trust-sensitive content",
        head.name,
        head.origin,
        revision.target.head.name,
        revision.target.sha[:7],
    )
    return TrustDecision(nominal=revision, trusted=revision.target, is_trusted=False)
