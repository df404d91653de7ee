import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from headscan_core.policy import DiscoveryPolicy, build_policy, traits_from_config
from headscan_core.source import SourceIdentity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "server_url": "https://github.com",
    "api_url": None,  # None = derived from server_url; set for GitHub Enterprise (https://host/api/v3)
    "store": "noop",  # noop | memory | sqlite
    "store_path": ".headscan.db",
    "sources": [],
    "owners": [],  # organizations or users whose repositories are each scanned as a source
}

# Checked in order before falling back to the GitHub CLI session.
TOKEN_ENV_VARS = ("HEADSCAN_TOKEN", "GITHUB_TOKEN")

# Applied to a source that lists no traits: branches that are not also origin
# pull requests, origin and fork pull requests merged with their target, forks
# trusted when their owner is a collaborator.
DEFAULT_TRAITS: list = [
    {"branch_discovery": {"strategy": "exclude_pr_branches"}},
    {"origin_pr_discovery": {"strategies": ["merge"]}},
    {"fork_pr_discovery": {"strategies": ["merge"], "trust": "contributors"}},
]


@dataclass
class SourceConfig:
    """One configured repository with its discovery policy."""

    identity: SourceIdentity
    policy: DiscoveryPolicy
    traits: list = field(default_factory=list)


@dataclass
class OwnerConfig:
    """An organization or user whose repositories are discovered as sources."""

    server_url: str
    owner: str
    policy: DiscoveryPolicy
    traits: list = field(default_factory=list)


def load_config(config_path: str = ".headscan.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .headscan.yml in the current directory
      3. CLI argument overrides

    The API token is resolved last, see resolve_token().
    """
    config = {**DEFAULT_CONFIG, "sources": list(DEFAULT_CONFIG["sources"]), "owners": list(DEFAULT_CONFIG["owners"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["token"] = resolve_token()

    return config


def _gh_cli_token() -> Optional[str]:
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    token = result.stdout.strip() if result.returncode == 0 else ""
    if not token:
        return None
    logger.debug("Resolved API token via gh CLI session.")
    return token


def resolve_token() -> Optional[str]:
    """Return an API token, or None when no source has one.

    Environment variables come first (HEADSCAN_TOKEN, then GITHUB_TOKEN as
    injected by GitHub Actions), then `gh auth token` for a developer logged
    in with the GitHub CLI. Without a token only public repositories can be
    scanned, at a much lower rate limit.
    """
    for var in TOKEN_ENV_VARS:
        if os.environ.get(var):
            return os.environ[var]
    return _gh_cli_token()


def api_url_for(config: dict) -> Optional[str]:
    """Return the REST API base URL for the configured server, or None for github.com."""
    if config.get("api_url"):
        return config["api_url"]
    server_url = config["server_url"].rstrip("/")
    if server_url in ("https://github.com", "http://github.com"):
        return None
    return f"{server_url}/api/v3"


def _parse_source(entry: dict, config: dict) -> SourceConfig:
    repo = entry.get("repo")
    if repo:
        if "/" not in repo:
            raise ValueError(f"Invalid repo {repo!r}: expected owner/name.")
        owner, repository = repo.split("/", 1)
    else:
        owner, repository = entry.get("owner"), entry.get("repository")
    if not owner or not repository:
        raise ValueError(f"Source entry needs 'repo: owner/name' or both 'owner' and 'repository': {entry!r}")

    traits = traits_from_config(entry.get("traits") or DEFAULT_TRAITS)
    identity = SourceIdentity(
        server_url=entry.get("server_url") or config["server_url"],
        owner=owner,
        repository=repository,
    )
    return SourceConfig(identity=identity, policy=build_policy(traits), traits=traits)


def load_sources(config: dict) -> list[SourceConfig]:
    """Build a SourceConfig for every entry under ``sources:``."""
    return [_parse_source(entry, config) for entry in config.get("sources") or []]


def find_source(config: dict, repo: str) -> SourceConfig:
    """Return the configured source for owner/name, or one with the default traits."""
    for source in load_sources(config):
        if source.identity.full_name.lower() == repo.lower():
            return source
    return _parse_source({"repo": repo}, config)


def _parse_owner(entry: dict, config: dict) -> OwnerConfig:
    owner = entry.get("owner")
    if not owner or "/" in owner:
        raise ValueError(f"Owner entry needs 'owner: name' (an organization or user): {entry!r}")
    traits = traits_from_config(entry.get("traits") or DEFAULT_TRAITS)
    return OwnerConfig(
        server_url=entry.get("server_url") or config["server_url"],
        owner=owner,
        policy=build_policy(traits),
        traits=traits,
    )


def find_owner(config: dict, owner: str) -> OwnerConfig:
    """Return the configured owner section for owner, or one with the default traits."""
    for entry in config.get("owners") or []:
        if str(entry.get("owner", "")).lower() == owner.lower():
            return _parse_owner(entry, config)
    return _parse_owner({"owner": owner}, config)
