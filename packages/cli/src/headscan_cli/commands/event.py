"""event command: apply a webhook payload to the stored head tables."""

from __future__ import annotations

import json
import logging

import click
from rich.console import Console

from headscan_cli.errors import reported_errors
from headscan_cli.records import delta_to_changes
from headscan_core.config import find_source, load_sources
from headscan_core.events.payloads import DECODERS, decode_event
from headscan_core.events.router import EventRouter

console = Console()
logger = logging.getLogger(__name__)


@click.command("event")
@click.option(
    "--kind",
    required=True,
    type=click.Choice(sorted(DECODERS)),
    help="Event kind, as sent in the X-GitHub-Event / X-Gitea-Event header.",
)
@click.argument("payload", type=click.File("r"))
@click.pass_context
def event_cmd(ctx, kind: str, payload):
    """Translate a webhook PAYLOAD (JSON file, - for stdin) into head changes.

    Changes are applied to every configured source the event belongs to. If
    no sources are configured, the event's own repository is used with the
    default traits.
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]
    client = ctx.obj["client"]

    try:
        body = json.load(payload)
    except json.JSONDecodeError as e:
        raise click.UsageError(f"Payload is not valid JSON: {e}") from e

    event = decode_event(kind, body)

    with reported_errors():
        sources = load_sources(config)
        if not sources and event.repository.owner and event.repository.name:
            sources = [find_source(config, f"{event.repository.owner}/{event.repository.name}")]

        router = EventRouter()
        for source in sources:
            router.register(source.identity, source.policy, client)

        def _apply(identity, event_type, delta):
            # Deltas are incremental, so they apply on top of whatever is stored.
            upserts, removals = delta_to_changes(identity.key, delta)
            generation = store.apply_delta(identity.key, upserts, removals)
            logger.debug("Applied %s delta to %s at generation %d", event_type, identity.full_name, generation)

        def _source_changed(identity, event_type):
            console.print(f"[yellow]Repository {identity.full_name} {event_type}; rescan to refresh.[/yellow]")

        router.add_head_listener(_apply)
        router.add_source_listener(_source_changed)
        deltas = router.route(event)

    if not deltas:
        console.print("[yellow]Event does not change any head.[/yellow]")
        return

    for identity, delta in deltas.items():
        for head, revision in delta.items():
            if revision is None:
                console.print(f"{identity.full_name}: [red]removed[/red] {head.kind} {head.name}")
            else:
                console.print(f"{identity.full_name}: [green]{head.kind} {head.name}[/green] → {revision.sha[:7]}")
