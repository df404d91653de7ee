"""Abstract remote repository client.

Discovery, trust and event translation depend on RemoteClient, never on a
concrete SDK, so a Gitea, GitHub or in-memory client can back the same
session. Implementations own transport concerns: authentication, pagination,
retries and timeouts all live below this interface.

Every method raises NotFoundError when the object does not exist and
RemoteError for any other failure. Nothing here retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from headscan_core.remote.models import (
        RemoteAnnotatedTag,
        RemoteBranch,
        RemoteCommit,
        RemotePullRequest,
        RemoteRelease,
        RemoteRepository,
        RemoteTag,
    )


class RemoteClient(ABC):
    """Read-only view of one remote server."""

    @abstractmethod
    def fetch_repository(self, owner: str, repository: str) -> RemoteRepository:
        """Return repository metadata."""

    @abstractmethod
    def fetch_owner_repositories(self, owner: str) -> list[RemoteRepository]:
        """Return every repository of an organization or user visible to the caller."""

    @abstractmethod
    def fetch_server_version(self) -> str | None:
        """Return the server version string, or None for unversioned hosted services.

        None means every capability is available.
        """

    @abstractmethod
    def fetch_branches(self, owner: str, repository: str) -> list[RemoteBranch]:
        """Return every branch of the repository."""

    @abstractmethod
    def fetch_branch(self, owner: str, repository: str, name: str) -> RemoteBranch:
        """Return a single branch."""

    @abstractmethod
    def fetch_tags(self, owner: str, repository: str) -> Iterable[RemoteTag]:
        """Return the repository tags.

        May be a lazy, paginated iterable. If it is a generator the discovery
        session closes it when the session is closed.
        """

    @abstractmethod
    def fetch_tag(self, owner: str, repository: str, name: str) -> RemoteTag:
        """Return a single tag by name."""

    @abstractmethod
    def fetch_annotated_tag(self, owner: str, repository: str, sha: str) -> RemoteAnnotatedTag:
        """Return the annotation object with the given sha."""

    @abstractmethod
    def fetch_commit(self, owner: str, repository: str, sha: str) -> RemoteCommit:
        """Return a single commit."""

    @abstractmethod
    def fetch_pull_requests(self, owner: str, repository: str, state: str = "open") -> list[RemotePullRequest]:
        """Return pull requests in the given state."""

    @abstractmethod
    def fetch_pull_request(self, owner: str, repository: str, number: int) -> RemotePullRequest:
        """Return a single pull request."""

    @abstractmethod
    def fetch_releases(self, owner: str, repository: str) -> list[RemoteRelease]:
        """Return every release, drafts and pre-releases included."""

    @abstractmethod
    def fetch_collaborators(self, owner: str, repository: str) -> list[str]:
        """Return the login names of the repository collaborators."""

    def close(self) -> None:
        """Release connections held by the client.

        Optional: the default is a no-op so callers can always call close().
        """
