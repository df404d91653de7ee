"""heads command: display the stored head table of a repository."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from headscan_cli.errors import reported_errors
from headscan_core.config import find_source

console = Console()

_KINDS = ("branch", "pull_request", "tag", "release")


@click.command("heads")
@click.option("--repo", required=True, help="Repository (owner/name).")
@click.option("--kind", type=click.Choice(_KINDS), default=None, help="Only show heads of this kind.")
@click.pass_context
def heads_cmd(ctx, repo: str, kind: str | None):
    """Show the head table stored by the last scan and the events since.

    Reads from the configured store. Add 'store: sqlite' to .headscan.yml to
    keep head tables between runs.
    """
    from headscan_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError("No store configured. Add 'store: sqlite' to .headscan.yml.")

    with reported_errors():
        identity = find_source(ctx.obj["config"], repo).identity

    records = store.list_heads(identity.key, kind=kind)
    if not records:
        console.print("[yellow]No heads stored.[/yellow]")
        return

    table = Table(
        title=f"Heads of {identity.full_name} (generation {store.generation(identity.key)})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Kind", width=12)
    table.add_column("Name", style="bold")
    table.add_column("SHA", width=8)
    table.add_column("Target", max_width=30)
    table.add_column("Origin", max_width=30)
    table.add_column("Updated At", width=20)

    for r in records:
        target = f"{r.target} ({r.target_sha[:7]})" if r.target else ""
        table.add_row(r.kind, r.name, r.sha[:7], target, r.origin, r.updated_at[:19].replace("T", " "))

    console.print(table)
