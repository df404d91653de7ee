"""Route decoded events to the sources they belong to.

Head deltas go to head listeners; repository created/deleted/updated events
are source-existence signals and go to source listeners instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from headscan_core.events.models import RepositoryEvent
from headscan_core.events.translator import event_type, is_for_source, source_event_type, translate

if TYPE_CHECKING:
    from headscan_core.policy import DiscoveryPolicy
    from headscan_core.remote.base import RemoteClient
    from headscan_core.source import SourceIdentity

logger = logging.getLogger(__name__)

HeadListener = Callable[["SourceIdentity", str, dict], None]
SourceListener = Callable[["SourceIdentity", str], None]


@dataclass
class _Registration:
    source: SourceIdentity
    policy: DiscoveryPolicy
    client: RemoteClient


class EventRouter:
    def __init__(self):
        self._registrations: list[_Registration] = []
        self._head_listeners: list[HeadListener] = []
        self._source_listeners: list[SourceListener] = []

    def register(self, source: SourceIdentity, policy: DiscoveryPolicy, client: RemoteClient) -> None:
        """Deliver events for source, translated under policy. client answers lookups the event cannot."""
        self._registrations.append(_Registration(source, policy, client))

    def add_head_listener(self, listener: HeadListener) -> None:
        """listener(source, event_type, delta) is called for every non-empty delta."""
        self._head_listeners.append(listener)

    def add_source_listener(self, listener: SourceListener) -> None:
        """listener(source, event_type) is called for repository events of a registered source."""
        self._source_listeners.append(listener)

    def route(self, event) -> dict[SourceIdentity, dict]:
        """Deliver event to every matching source and return the deltas produced."""
        deltas: dict[SourceIdentity, dict] = {}
        for registration in self._registrations:
            source = registration.source
            if isinstance(event, RepositoryEvent):
                if is_for_source(event, source):
                    kind = source_event_type(event)
                    logger.info("Repository %s %s", source.full_name, kind)
                    for listener in self._source_listeners:
                        listener(source, kind)
                continue

            delta = translate(event, source, registration.policy, registration.client)
            if not delta:
                continue
            deltas[source] = delta
            kind = event_type(event)
            logger.info("%s event for %s: %d head(s) %s", event.kind, source.full_name, len(delta), kind)
            for listener in self._head_listeners:
                listener(source, kind, delta)
        return deltas
