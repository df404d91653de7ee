"""RemoteClient backed by PyGithub, for GitHub and GitHub Enterprise.

GitHub does not publish a server version, so fetch_server_version() returns
None and every capability gate in the discovery session is open.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from github import Auth, Github, GithubException, UnknownObjectException
from github.Consts import DEFAULT_BASE_URL

from headscan_core.errors import NotFoundError, RemoteError
from headscan_core.remote.base import RemoteClient
from headscan_core.remote.models import (
    RemoteAnnotatedTag,
    RemoteBranch,
    RemoteCommit,
    RemotePullRef,
    RemotePullRequest,
    RemoteRelease,
    RemoteRepository,
    RemoteTag,
)

logger = logging.getLogger(__name__)


@contextmanager
def _remote_call(what: str):
    """Translate PyGithub failures into the headscan error hierarchy."""
    try:
        yield
    except UnknownObjectException as e:
        raise NotFoundError(f"{what}: not found") from e
    except GithubException as e:
        if e.status == 404:
            raise NotFoundError(f"{what}: not found") from e
        raise RemoteError(f"{what}: HTTP {e.status}") from e


def _pull_ref(side) -> RemotePullRef:
    repo = side.repo
    # repo is None when the fork behind a pull request has been deleted.
    return RemotePullRef(
        ref=side.ref,
        sha=side.sha,
        owner=repo.owner.login if repo is not None and repo.owner is not None else None,
        repository=repo.name if repo is not None else None,
    )


def _to_pull_request(pr) -> RemotePullRequest:
    return RemotePullRequest(
        number=pr.number,
        state=pr.state,
        base=_pull_ref(pr.base),
        head=_pull_ref(pr.head),
        title=pr.title or "",
    )


def _is_empty(repo) -> bool:
    """True when the repository has no commits at all.

    size is a lazily recomputed estimate that stays 0 for a while after the
    first push, so a zero size is only a hint to look at the branch list.
    GitHub answers 409 for git data of a repository without commits.
    """
    if repo.size:
        return False
    try:
        return next(iter(repo.get_branches()), None) is None
    except GithubException as e:
        if e.status == 409:
            return True
        raise


def _to_repository(repo) -> RemoteRepository:
    permissions = repo.permissions
    return RemoteRepository(
        owner=repo.owner.login,
        name=repo.name,
        html_url=repo.html_url,
        default_branch=repo.default_branch,
        empty=_is_empty(repo),
        mirror=repo.mirror_url is not None,
        archived=bool(repo.archived),
        admin=bool(permissions and permissions.admin),
    )


class GithubClient(RemoteClient):
    def __init__(self, token: str | None = None, base_url: str | None = None):
        auth = Auth.Token(token) if token else None
        self._gh = Github(auth=auth, base_url=base_url or DEFAULT_BASE_URL)

    def _repo(self, owner: str, repository: str):
        with _remote_call(f"repository {owner}/{repository}"):
            return self._gh.get_repo(f"{owner}/{repository}")

    def fetch_repository(self, owner: str, repository: str) -> RemoteRepository:
        repo = self._repo(owner, repository)
        with _remote_call(f"repository {owner}/{repository}"):
            return _to_repository(repo)

    def fetch_owner_repositories(self, owner: str) -> list[RemoteRepository]:
        with _remote_call(f"repositories of {owner}"):
            try:
                account = self._gh.get_organization(owner)
            except UnknownObjectException:
                logger.debug("%s is not an organization; listing user repositories", owner)
                account = self._gh.get_user(owner)
            return [_to_repository(repo) for repo in account.get_repos()]

    def fetch_server_version(self) -> str | None:
        return None

    def fetch_branches(self, owner: str, repository: str) -> list[RemoteBranch]:
        repo = self._repo(owner, repository)
        with _remote_call(f"branches of {owner}/{repository}"):
            return [RemoteBranch(name=b.name, sha=b.commit.sha if b.commit else None) for b in repo.get_branches()]

    def fetch_branch(self, owner: str, repository: str, name: str) -> RemoteBranch:
        repo = self._repo(owner, repository)
        with _remote_call(f"branch {name} of {owner}/{repository}"):
            b = repo.get_branch(name)
            return RemoteBranch(name=b.name, sha=b.commit.sha if b.commit else None)

    def fetch_tags(self, owner: str, repository: str) -> Iterator[RemoteTag]:
        repo = self._repo(owner, repository)
        with _remote_call(f"tags of {owner}/{repository}"):
            # The tag listing only carries commit shas; the refs carry the tag
            # object ids needed to recognise annotated tags.
            object_ids = {ref.ref[len("refs/tags/"):]: ref.object.sha for ref in repo.get_git_matching_refs("tags")}
            for t in repo.get_tags():
                commit_sha = t.commit.sha if t.commit else None
                yield RemoteTag(name=t.name, id=object_ids.get(t.name, commit_sha), sha=commit_sha)

    def fetch_tag(self, owner: str, repository: str, name: str) -> RemoteTag:
        repo = self._repo(owner, repository)
        with _remote_call(f"tag {name} of {owner}/{repository}"):
            ref = repo.get_git_ref(f"tags/{name}")
            if ref.object.type == "tag":
                annotation = repo.get_git_tag(ref.object.sha)
                return RemoteTag(name=name, id=ref.object.sha, sha=annotation.object.sha)
            return RemoteTag(name=name, id=ref.object.sha, sha=ref.object.sha)

    def fetch_annotated_tag(self, owner: str, repository: str, sha: str) -> RemoteAnnotatedTag:
        repo = self._repo(owner, repository)
        with _remote_call(f"annotated tag {sha} of {owner}/{repository}"):
            tag = repo.get_git_tag(sha)
            return RemoteAnnotatedTag(sha=tag.sha, tagged_at=tag.tagger.date if tag.tagger else None)

    def fetch_commit(self, owner: str, repository: str, sha: str) -> RemoteCommit:
        repo = self._repo(owner, repository)
        with _remote_call(f"commit {sha} of {owner}/{repository}"):
            commit = repo.get_commit(sha)
            committer = commit.commit.committer
            return RemoteCommit(sha=commit.sha, committed_at=committer.date if committer else None)

    def fetch_pull_requests(self, owner: str, repository: str, state: str = "open") -> list[RemotePullRequest]:
        repo = self._repo(owner, repository)
        with _remote_call(f"pull requests of {owner}/{repository}"):
            return [_to_pull_request(pr) for pr in repo.get_pulls(state=state)]

    def fetch_pull_request(self, owner: str, repository: str, number: int) -> RemotePullRequest:
        repo = self._repo(owner, repository)
        with _remote_call(f"pull request #{number} of {owner}/{repository}"):
            return _to_pull_request(repo.get_pull(number))

    def fetch_releases(self, owner: str, repository: str) -> list[RemoteRelease]:
        repo = self._repo(owner, repository)
        with _remote_call(f"releases of {owner}/{repository}"):
            return [
                RemoteRelease(
                    id=r.id,
                    tag_name=r.tag_name,
                    draft=r.draft,
                    prerelease=r.prerelease,
                    title=r.title or "",
                )
                for r in repo.get_releases()
            ]

    def fetch_collaborators(self, owner: str, repository: str) -> list[str]:
        repo = self._repo(owner, repository)
        with _remote_call(f"collaborators of {owner}/{repository}"):
            return [user.login for user in repo.get_collaborators()]

    def close(self) -> None:
        self._gh.close()
