"""scan command: run a full discovery pass and store the resulting head table."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from headscan_cli.errors import reported_errors
from headscan_cli.records import revision_to_record
from headscan_core.config import find_owner, find_source, load_sources
from headscan_core.model import PullRequestRevision
from headscan_core.navigator import discover_sources
from headscan_core.scanner import scan

console = Console()

_KIND_STYLE = {
    "branch": "green",
    "pull_request": "magenta",
    "tag": "cyan",
    "release": "yellow",
}


def _heads_table(title: str, heads: dict) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Kind", width=12)
    table.add_column("Name", style="bold")
    table.add_column("SHA", width=8)
    table.add_column("Target", max_width=30)
    for head, revision in heads.items():
        style = _KIND_STYLE.get(head.kind, "white")
        target = ""
        if isinstance(revision, PullRequestRevision):
            target = f"{head.target.name} ({revision.target_sha[:7]})"
        table.add_row(f"[{style}]{head.kind}[/{style}]", head.name, revision.sha[:7], target)
    return table


def _scan_into_store(identity, policy, store, client) -> None:
    expected = store.generation(identity.key)
    summary = scan(identity, policy, client)
    records = [revision_to_record(identity.key, r, summary.scanned_at) for r in summary.heads.values()]
    store.replace(identity.key, records, expected_generation=expected)

    if summary.heads:
        console.print(_heads_table(f"Heads of {identity.full_name}", summary.heads))
    else:
        console.print(f"[yellow]No heads found in {identity.full_name}.[/yellow]")


@click.command("scan")
@click.option("--repo", default=None, help="Repository (owner/name). Omit to scan every configured source.")
@click.option("--owner", default=None, help="Organization or user. Scans every repository it owns.")
@click.pass_context
def scan_cmd(ctx, repo: str | None, owner: str | None):
    """Discover branches, pull requests, tags and releases of a repository.

    The discovered heads replace the repository's stored head table. A pass
    that fails leaves the stored table as it was. With --owner, each
    repository of the organization or user is scanned in turn.
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]
    client = ctx.obj["client"]

    if repo and owner:
        raise click.UsageError("Pass either --repo or --owner, not both.")

    with reported_errors():
        if owner:
            owner_config = find_owner(config, owner)
            identities = discover_sources(owner_config.server_url, owner_config.owner, owner_config.policy, client)
            if not identities:
                console.print(f"[yellow]No repositories to scan for {owner}.[/yellow]")
            for identity in identities:
                _scan_into_store(identity, owner_config.policy, store, client)
            return

        sources = [find_source(config, repo)] if repo else load_sources(config)
        if not sources:
            raise click.UsageError("No repository given. Pass --repo or --owner, or list sources in .headscan.yml.")

        for source in sources:
            _scan_into_store(source.identity, source.policy, store, client)
