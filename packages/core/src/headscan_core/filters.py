"""Branch filters that relate a branch to the pull requests of the same snapshot.

Filters only look at branch heads and only make sense while origin pull
request discovery is active, since they read the session's pull request list.
The branch-discovery trait picks at most one of them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from headscan_core.model import Branch

if TYPE_CHECKING:
    from headscan_core.model import Head
    from headscan_core.remote.models import RemotePullRequest
    from headscan_core.session import DiscoverySession

logger = logging.getLogger(__name__)

_PRIMARY_BRANCH_NAMES = ("main", "master")


def is_origin_pr_branch(pull_requests: list[RemotePullRequest], branch_name: str) -> bool:
    """Return True if branch_name is the head ref of an origin pull request.

    Pull requests whose head side is incomplete (deleted fork, missing owner)
    are skipped rather than guessed at.
    """
    for pr in pull_requests:
        if pr is None or not pr.head_is_complete:
            logger.debug("Skipping pull request with incomplete head while filtering %s", branch_name)
            continue
        if pr.is_origin and pr.head.ref.lower() == branch_name.lower():
            return True
    return False


class HeadFilter(ABC):
    @abstractmethod
    def is_excluded(self, request: DiscoverySession, head: Head) -> bool:
        """Return True to drop head from the current pass."""


@dataclass(frozen=True)
class ExcludeOriginPRBranches(HeadFilter):
    """Drop branches that are also filed as an origin pull request."""

    def is_excluded(self, request: DiscoverySession, head: Head) -> bool:
        if not isinstance(head, Branch):
            return False
        return is_origin_pr_branch(request.pull_requests, head.name)


@dataclass(frozen=True)
class OnlyOriginPRBranches(HeadFilter):
    """Keep only branches that are also filed as an origin pull request."""

    def is_excluded(self, request: DiscoverySession, head: Head) -> bool:
        if not isinstance(head, Branch):
            return False
        return not is_origin_pr_branch(request.pull_requests, head.name)


@dataclass(frozen=True)
class OriginPRBranchesOrMain(HeadFilter):
    """Like OnlyOriginPRBranches, but always keep main, master and the repository's default branch."""

    def is_excluded(self, request: DiscoverySession, head: Head) -> bool:
        if not isinstance(head, Branch):
            return False
        name = head.name.lower()
        if name in _PRIMARY_BRANCH_NAMES:
            return False
        default_branch = request.repository.default_branch
        if default_branch and name == default_branch.lower():
            return False
        return not is_origin_pr_branch(request.pull_requests, head.name)
