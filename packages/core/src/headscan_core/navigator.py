"""Owner-level discovery: one source per repository of an organization or user."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from headscan_core.source import SourceIdentity

if TYPE_CHECKING:
    from headscan_core.policy import DiscoveryPolicy
    from headscan_core.remote.base import RemoteClient

logger = logging.getLogger(__name__)


def discover_sources(
    server_url: str, owner: str, policy: DiscoveryPolicy, client: RemoteClient
) -> list[SourceIdentity]:
    """Return a source for every repository owner owns, in listing order.

    Repositories owned by someone else (a user listing can include
    organizations they belong to) and empty repositories are skipped, as are
    archived repositories when the policy excludes them. A repository listed
    twice is only returned once.
    """
    logger.info("Checking repositories of %s...", owner)
    sources: list[SourceIdentity] = []
    seen: set[str] = set()
    count = 0
    for repo in client.fetch_owner_repositories(owner):
        if repo.owner.lower() != owner.lower():
            continue
        key = repo.name.lower()
        if key in seen:
            continue
        seen.add(key)
        count += 1
        if repo.empty:
            logger.info("    Ignoring empty repository %s", repo.name)
            continue
        if repo.archived and policy.exclude_archived:
            logger.info("    Ignoring archived repository %s", repo.name)
            continue
        logger.info("    Proposing %s", repo.name)
        sources.append(SourceIdentity(server_url=server_url, owner=repo.owner, repository=repo.name))
    logger.info("%d repositories were processed", count)
    return sources
