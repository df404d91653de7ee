"""Tests for source identity and event URL matching."""

import pytest

from headscan_core.source import SourceIdentity, server_matches


class TestSourceIdentity:
    def test_key_is_case_normalised(self):
        identity = SourceIdentity("https://Git.Example.com/", "Acme", "Widgets")
        assert identity.key == "https://git.example.com/acme/widgets"

    def test_same_repository_is_case_insensitive(self):
        identity = SourceIdentity("https://git.example.com", "acme", "widgets")
        assert identity.is_same_repository("ACME", "Widgets")
        assert not identity.is_same_repository("acme", "gadgets")
        assert not identity.is_same_repository(None, "widgets")

    def test_matches_requires_repository_and_server(self):
        identity = SourceIdentity("https://git.example.com", "acme", "widgets")
        assert identity.matches("acme", "widgets", "https://git.example.com/acme/widgets")
        assert not identity.matches("acme", "widgets", "https://elsewhere.com/acme/widgets")
        assert not identity.matches("acme", "gadgets", "https://git.example.com/acme/gadgets")


class TestServerMatches:
    @pytest.mark.parametrize(
        "server_url, html_url",
        [
            ("https://git.example.com", "https://GIT.example.com/acme/widgets"),
            ("https://git.example.com", "https://git.example.com:443/acme/widgets"),
            ("http://git.example.com", "http://git.example.com:80/acme/widgets"),
            ("https://git.example.com", "http://git.example.com/acme/widgets"),
            ("http://git.example.com", "https://git.example.com/acme/widgets"),
            ("https://example.com/gitea", "https://example.com/gitea/acme/widgets"),
            ("https://example.com/gitea/", "https://example.com/gitea/acme/widgets"),
        ],
    )
    def test_matching_urls(self, server_url, html_url):
        assert server_matches(server_url, html_url)

    @pytest.mark.parametrize(
        "server_url, html_url",
        [
            ("https://git.example.com", "https://git.other.com/acme/widgets"),
            ("https://git.example.com:3000", "https://git.example.com/acme/widgets"),
            ("https://git.example.com:3000", "http://git.example.com:3000/acme/widgets"),
            ("https://example.com/gitea", "https://example.com/other/acme/widgets"),
            ("https://example.com/gitea", "https://example.com/gitea-old/acme/widgets"),
            ("https://git.example.com", "ftp://git.example.com/acme/widgets"),
            ("https://git.example.com", ""),
            ("https://git.example.com", None),
        ],
    )
    def test_non_matching_urls(self, server_url, html_url):
        assert not server_matches(server_url, html_url)
