"""Tests for configuration loading."""

import subprocess

import pytest

from headscan_core.config import api_url_for, find_owner, find_source, load_config, load_sources, resolve_token
from headscan_core.model import CheckoutStrategy
from headscan_core.trust import TrustEveryone


@pytest.fixture(autouse=True)
def no_gh_cli(mocker):
    """Keep the developer's own gh session out of these tests."""
    return mocker.patch("headscan_core.config.subprocess.run", side_effect=FileNotFoundError)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["server_url"] == "https://github.com"
    assert config["store"] == "noop"
    assert config["store_path"] == ".headscan.db"
    assert config["sources"] == []


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".headscan.yml"
    cfg.write_text("server_url: https://git.example.com\nstore: sqlite\n")
    config = load_config(config_path=str(cfg))
    assert config["server_url"] == "https://git.example.com"
    assert config["store"] == "sqlite"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".headscan.yml"
    cfg.write_text("store: sqlite\n")
    config = load_config(config_path=str(cfg), cli_overrides={"store": "memory"})
    assert config["store"] == "memory"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".headscan.yml"
    cfg.write_text("store: sqlite\n")
    config = load_config(config_path=str(cfg), cli_overrides={"store": None})
    assert config["store"] == "sqlite"


def test_headscan_token_preferred_over_github_token(monkeypatch, tmp_path):
    monkeypatch.setenv("HEADSCAN_TOKEN", "hs-token")
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["token"] == "hs-token"


def test_github_token_used_as_fallback(monkeypatch, tmp_path):
    monkeypatch.delenv("HEADSCAN_TOKEN", raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["token"] == "gh-token"


class TestResolveToken:
    def test_gh_cli_fallback(self, monkeypatch, no_gh_cli):
        monkeypatch.delenv("HEADSCAN_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        no_gh_cli.side_effect = None
        no_gh_cli.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout="gho_abc\n")
        assert resolve_token() == "gho_abc"

    def test_environment_wins_without_calling_gh(self, monkeypatch, no_gh_cli):
        monkeypatch.delenv("HEADSCAN_TOKEN", raising=False)
        monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
        assert resolve_token() == "gh-token"
        no_gh_cli.assert_not_called()

    def test_gh_missing(self, monkeypatch):
        monkeypatch.delenv("HEADSCAN_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        assert resolve_token() is None

    def test_gh_logged_out(self, monkeypatch, no_gh_cli):
        monkeypatch.delenv("HEADSCAN_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        no_gh_cli.side_effect = None
        no_gh_cli.return_value = subprocess.CompletedProcess(args=[], returncode=1, stdout="")
        assert resolve_token() is None

    def test_load_config_uses_gh_session(self, monkeypatch, no_gh_cli, tmp_path):
        monkeypatch.delenv("HEADSCAN_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        no_gh_cli.side_effect = None
        no_gh_cli.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout="gho_abc\n")
        assert load_config(config_path=str(tmp_path / "nonexistent.yml"))["token"] == "gho_abc"


def test_sources_list_is_not_shared_reference(tmp_path):
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["sources"].append({"repo": "acme/widgets"})
    assert config_b["sources"] == []


class TestApiUrl:
    def test_github_com_uses_library_default(self):
        assert api_url_for({"server_url": "https://github.com", "api_url": None}) is None

    def test_enterprise_server_derives_api_path(self):
        config = {"server_url": "https://ghe.example.com/", "api_url": None}
        assert api_url_for(config) == "https://ghe.example.com/api/v3"

    def test_explicit_api_url_wins(self):
        config = {"server_url": "https://ghe.example.com", "api_url": "https://api.ghe.example.com"}
        assert api_url_for(config) == "https://api.ghe.example.com"


class TestSources:
    def test_sources_parsed_with_traits(self, tmp_path):
        cfg = tmp_path / ".headscan.yml"
        cfg.write_text(
            "sources:\n"
            "  - repo: acme/widgets\n"
            "    traits:\n"
            "      - branch_discovery: {strategy: all_branches}\n"
            "      - tag_discovery\n"
            "      - fork_pr_discovery: {strategies: [merge, head], trust: everyone}\n"
        )
        sources = load_sources(load_config(config_path=str(cfg)))

        assert len(sources) == 1
        source = sources[0]
        assert source.identity.full_name == "acme/widgets"
        assert source.identity.server_url == "https://github.com"
        assert source.policy.want_tags is True
        assert source.policy.fork_strategies == frozenset({CheckoutStrategy.MERGE, CheckoutStrategy.HEAD})
        assert isinstance(source.policy.authorities["fork_pull_request"], TrustEveryone)

    def test_owner_and_repository_keys_accepted(self):
        config = {"server_url": "https://github.com", "sources": [{"owner": "acme", "repository": "widgets"}]}
        assert load_sources(config)[0].identity.full_name == "acme/widgets"

    def test_source_without_traits_gets_defaults(self):
        config = {"server_url": "https://github.com", "sources": [{"repo": "acme/widgets"}]}
        policy = load_sources(config)[0].policy
        assert policy.want_branches is True
        assert policy.want_origin_prs is True
        assert policy.want_fork_prs is True
        assert policy.want_tags is False

    def test_per_source_server_url(self):
        config = {
            "server_url": "https://github.com",
            "sources": [{"repo": "acme/widgets", "server_url": "https://gitea.example.com"}],
        }
        assert load_sources(config)[0].identity.server_url == "https://gitea.example.com"

    def test_invalid_repo_raises(self):
        config = {"server_url": "https://github.com", "sources": [{"repo": "widgets"}]}
        with pytest.raises(ValueError, match="owner/name"):
            load_sources(config)

    def test_unknown_trait_raises(self):
        config = {"server_url": "https://github.com", "sources": [{"repo": "acme/widgets", "traits": ["nope"]}]}
        with pytest.raises(ValueError, match="Unknown trait"):
            load_sources(config)

    def test_find_source_is_case_insensitive(self):
        config = {
            "server_url": "https://github.com",
            "sources": [{"repo": "Acme/Widgets", "traits": ["tag_discovery"]}],
        }
        source = find_source(config, "acme/widgets")
        assert source.policy.want_tags is True

    def test_find_source_falls_back_to_defaults(self):
        config = {"server_url": "https://github.com", "sources": []}
        source = find_source(config, "acme/gadgets")
        assert source.identity.full_name == "acme/gadgets"
        assert source.policy.want_branches is True


class TestOwners:
    def test_configured_owner_uses_its_traits(self):
        config = {
            "server_url": "https://github.com",
            "owners": [{"owner": "Acme", "traits": ["branch_discovery", "exclude_archived"]}],
        }
        owner = find_owner(config, "acme")
        assert owner.owner == "Acme"
        assert owner.server_url == "https://github.com"
        assert owner.policy.exclude_archived is True

    def test_unconfigured_owner_gets_defaults(self):
        owner = find_owner({"server_url": "https://git.example.com", "owners": []}, "octocat")
        assert owner.owner == "octocat"
        assert owner.server_url == "https://git.example.com"
        assert owner.policy.want_branches is True
        assert owner.policy.exclude_archived is False

    def test_owner_with_repository_rejected(self):
        with pytest.raises(ValueError, match="Owner entry"):
            find_owner({"server_url": "https://github.com", "owners": []}, "acme/widgets")

    def test_owners_read_from_file(self, tmp_path):
        config_file = tmp_path / ".headscan.yml"
        config_file.write_text("owners:\n  - owner: acme\n    traits: [exclude_archived]\n")
        config = load_config(config_path=str(config_file))
        assert find_owner(config, "acme").policy.exclude_archived is True
