"""Configured source identity and matching of inbound events against it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class SourceIdentity:
    """One repository on one server: the unit that owns a head table."""

    server_url: str
    owner: str
    repository: str

    @property
    def key(self) -> str:
        """Stable, case-normalised identifier used by stores."""
        return f"{self.server_url.rstrip('/').lower()}/{self.owner.lower()}/{self.repository.lower()}"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repository}"

    def is_same_repository(self, owner: str | None, repository: str | None) -> bool:
        if owner is None or repository is None:
            return False
        return owner.lower() == self.owner.lower() and repository.lower() == self.repository.lower()

    def matches(self, owner: str | None, repository: str | None, html_url: str | None) -> bool:
        """Return True if an event about owner/repository at html_url is for this source."""
        if not self.is_same_repository(owner, repository):
            return False
        return server_matches(self.server_url, html_url)


def server_matches(server_url: str, html_url: str | None) -> bool:
    """Return True if html_url is served by the server at server_url.

    Hosts compare case-insensitively. Ports default per scheme and must agree
    when both URLs use the same scheme; an http/https mix is accepted when the
    configured server uses its scheme's default port. The event path must sit
    below the server path, so servers mounted under a sub-path only match
    their own repositories.
    """
    if not html_url:
        return False
    try:
        server = urlsplit(server_url)
        event = urlsplit(html_url)
        server_port = server.port or _DEFAULT_PORTS.get(server.scheme)
        event_port = event.port or _DEFAULT_PORTS.get(event.scheme)
    except ValueError:
        logger.debug("Unparseable URL comparing %r with %r", server_url, html_url)
        return False

    if not server.hostname or not event.hostname:
        return False
    if server.hostname.lower() != event.hostname.lower():
        return False
    if server.scheme not in _DEFAULT_PORTS or event.scheme not in _DEFAULT_PORTS:
        return False
    if server.scheme == event.scheme and server_port != event_port:
        return False
    if server.scheme != event.scheme and server_port != _DEFAULT_PORTS[server.scheme]:
        return False

    server_path = server.path.rstrip("/")
    event_path = event.path or "/"
    return event_path.startswith(server_path + "/")
