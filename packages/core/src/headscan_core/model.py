"""Heads and revisions.

A head is a named, buildable reference in the remote repository. A revision
binds one head to the content it pointed at when it was observed. Both are
frozen dataclasses compared by value, so a head built from a webhook event is
equal to the same head built by a full discovery pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class CheckoutStrategy(Enum):
    """How a pull request is materialised for a build."""

    HEAD = "head"  # the pull request branch alone
    MERGE = "merge"  # the pull request merged into its target


@dataclass(frozen=True)
class Origin:
    """Where a pull request's source branch lives.

    ``fork`` is ``None`` for the default origin (the target repository itself)
    and ``"owner/repository"`` for forks.
    """

    fork: str | None = None

    @property
    def is_default(self) -> bool:
        return self.fork is None

    @classmethod
    def of_fork(cls, owner: str, repository: str) -> Origin:
        return cls(fork=f"{owner}/{repository}")

    def __str__(self) -> str:
        return "default" if self.fork is None else f"fork:{self.fork}"


DEFAULT_ORIGIN = Origin()


@dataclass(frozen=True)
class Branch:
    name: str

    kind = "branch"


@dataclass(frozen=True)
class Tag:
    name: str
    # Epoch milliseconds. Not part of identity: a tag is its name.
    timestamp: int = field(default=0, compare=False)

    kind = "tag"


@dataclass(frozen=True)
class PullRequest:
    name: str
    id: int
    target: Branch
    strategy: CheckoutStrategy
    origin: Origin
    origin_owner: str
    origin_repository: str
    origin_name: str

    kind = "pull_request"

    @property
    def is_fork(self) -> bool:
        return not self.origin.is_default


@dataclass(frozen=True)
class Release:
    name: str
    release_id: int

    kind = "release"


Head = Union[Branch, Tag, PullRequest, Release]


@dataclass(frozen=True)
class BranchRevision:
    head: Branch
    sha: str


@dataclass(frozen=True)
class TagRevision:
    head: Tag
    sha: str


@dataclass(frozen=True)
class PullRequestRevision:
    """Both sides of a pull request at one point in time.

    Only one side is checked out; trust resolution decides which.
    """

    head: PullRequest
    target: BranchRevision
    origin: BranchRevision

    @property
    def sha(self) -> str:
        return self.origin.sha

    @property
    def target_sha(self) -> str:
        return self.target.sha


@dataclass(frozen=True)
class ReleaseRevision:
    head: Release
    sha: str


Revision = Union[BranchRevision, TagRevision, PullRequestRevision, ReleaseRevision]


def pull_request_name(number: int, strategy: CheckoutStrategy, strategy_count: int) -> str:
    """Return the display name for one checkout strategy of a pull request.

    The strategy suffix is only added when the same pull request produces more
    than one head, keeping display names unique within a pass.
    """
    if strategy_count > 1:
        return f"PR-{number}-{strategy.value}"
    return f"PR-{number}"


def sorted_strategies(strategies) -> list[CheckoutStrategy]:
    """Return strategies in declaration order so passes are deterministic."""
    order = list(CheckoutStrategy)
    return sorted(strategies, key=order.index)


def build_pull_request_head(
    number: int,
    target_ref: str,
    strategy: CheckoutStrategy,
    strategy_count: int,
    origin: Origin,
    origin_owner: str,
    origin_repository: str,
    origin_ref: str,
) -> PullRequest:
    return PullRequest(
        name=pull_request_name(number, strategy, strategy_count),
        id=number,
        target=Branch(target_ref),
        strategy=strategy,
        origin=origin,
        origin_owner=origin_owner,
        origin_repository=origin_repository,
        origin_name=origin_ref,
    )


def build_pull_request_revision(head: PullRequest, base_sha: str, head_sha: str) -> PullRequestRevision:
    return PullRequestRevision(
        head=head,
        target=BranchRevision(head.target, base_sha),
        origin=BranchRevision(Branch(head.origin_name), head_sha),
    )
