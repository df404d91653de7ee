"""Shared fixtures: an in-memory RemoteClient and the source it serves."""

import pytest

from headscan_core.errors import NotFoundError
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
from headscan_core.source import SourceIdentity

SERVER = "https://git.example.com"
OWNER = "acme"
REPO = "widgets"


class FakeClient(RemoteClient):
    """Serves one repository from plain lists and records every call made."""

    def __init__(self):
        self.repository = RemoteRepository(owner=OWNER, name=REPO, html_url=f"{SERVER}/{OWNER}/{REPO}")
        self.version = None
        self.branches = []
        self.tags = []
        self.annotations = {}
        self.commits = {}
        self.pull_requests = []
        self.releases = []
        self.collaborators = []
        self.owner_repositories = []
        self.calls = []
        self.tag_stream_closed = False

    def fetch_repository(self, owner, repository):
        self.calls.append("repository")
        return self.repository

    def fetch_owner_repositories(self, owner):
        self.calls.append("owner_repositories")
        return list(self.owner_repositories)

    def fetch_server_version(self):
        self.calls.append("server_version")
        return self.version

    def fetch_branches(self, owner, repository):
        self.calls.append("branches")
        return list(self.branches)

    def fetch_branch(self, owner, repository, name):
        self.calls.append("branch")
        for b in self.branches:
            if b.name == name:
                return b
        raise NotFoundError(f"branch {name}")

    def fetch_tags(self, owner, repository):
        self.calls.append("tags")
        try:
            yield from self.tags
        finally:
            self.tag_stream_closed = True

    def fetch_tag(self, owner, repository, name):
        self.calls.append("tag")
        for t in self.tags:
            if t.name == name:
                return t
        raise NotFoundError(f"tag {name}")

    def fetch_annotated_tag(self, owner, repository, sha):
        self.calls.append("annotated_tag")
        if sha not in self.annotations:
            raise NotFoundError(f"tag object {sha}")
        return self.annotations[sha]

    def fetch_commit(self, owner, repository, sha):
        self.calls.append("commit")
        if sha not in self.commits:
            raise NotFoundError(f"commit {sha}")
        return self.commits[sha]

    def fetch_pull_requests(self, owner, repository, state="open"):
        self.calls.append("pull_requests")
        return [pr for pr in self.pull_requests if pr.state == state]

    def fetch_pull_request(self, owner, repository, number):
        self.calls.append("pull_request")
        for pr in self.pull_requests:
            if pr.number == number:
                return pr
        raise NotFoundError(f"pull request {number}")

    def fetch_releases(self, owner, repository):
        self.calls.append("releases")
        return list(self.releases)

    def fetch_collaborators(self, owner, repository):
        self.calls.append("collaborators")
        return list(self.collaborators)

    # Builders ---------------------------------------------------------------

    def add_branch(self, name, sha):
        self.branches.append(RemoteBranch(name, sha))

    def add_tag(self, name, sha, tag_id=None, tagged_at=None, committed_at=None):
        self.tags.append(RemoteTag(name, tag_id or sha, sha))
        if tagged_at is not None:
            self.annotations[tag_id] = RemoteAnnotatedTag(tag_id, tagged_at)
        if committed_at is not None:
            self.commits[sha] = RemoteCommit(sha, committed_at)

    def add_pull_request(
        self,
        number,
        head_ref,
        head_sha,
        base_ref="main",
        base_sha="b" * 40,
        owner=OWNER,
        repo=REPO,
        state="open",
    ):
        pr = RemotePullRequest(
            number=number,
            state=state,
            base=RemotePullRef(ref=base_ref, sha=base_sha, owner=OWNER, repository=REPO),
            head=RemotePullRef(ref=head_ref, sha=head_sha, owner=owner, repository=repo),
        )
        self.pull_requests.append(pr)
        return pr

    def add_repository(self, name, owner=OWNER, empty=False, archived=False):
        html_url = f"{SERVER}/{owner}/{name}"
        self.owner_repositories.append(
            RemoteRepository(owner=owner, name=name, html_url=html_url, empty=empty, archived=archived)
        )

    def add_release(self, release_id, tag_name, draft=False, prerelease=False):
        self.releases.append(RemoteRelease(id=release_id, tag_name=tag_name, draft=draft, prerelease=prerelease))


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def source():
    return SourceIdentity(server_url=SERVER, owner=OWNER, repository=REPO)


@pytest.fixture
def event_repository():
    """Owner, name and html_url of the fake repository as a webhook sends them."""
    return {"owner": {"username": OWNER, "login": OWNER}, "name": REPO, "html_url": f"{SERVER}/{OWNER}/{REPO}"}
