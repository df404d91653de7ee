"""resolve command: look up one head by display name and decide what may be built."""

from __future__ import annotations

import click
from rich.console import Console

from headscan_cli.errors import reported_errors
from headscan_core.config import find_source
from headscan_core.model import PullRequestRevision
from headscan_core.scanner import retrieve_named, trusted_revision

console = Console()


@click.command("resolve")
@click.option("--repo", required=True, help="Repository (owner/name).")
@click.option("--name", "head_name", required=True, help="Head display name, e.g. main, PR-7 or v1.0.")
@click.option(
    "--kind",
    type=click.Choice(("branch", "pull_request", "tag", "release")),
    default=None,
    help="Head kind, for a release that shares its name with a tag.",
)
@click.pass_context
def resolve_cmd(ctx, repo: str, head_name: str, kind: str | None):
    """Resolve a head to its current revision and its trusted revision.

    For an untrusted pull request the trusted revision is the target branch:
    pipeline definitions and other trust-sensitive files must be read from it
    instead of from the pull request.
    """
    client = ctx.obj["client"]

    with reported_errors():
        source = find_source(ctx.obj["config"], repo)
        revision = retrieve_named(source.identity, source.policy, client, head_name, kind)
        if revision is None:
            raise click.ClickException(f"No head named {head_name!r} in {source.identity.full_name}.")
        decision = trusted_revision(source.identity, source.policy, client, revision)

    head = revision.head
    console.print(f"[bold]{head.name}[/bold] ({head.kind})")
    console.print(f"  revision: {revision.sha}")
    if isinstance(revision, PullRequestRevision):
        console.print(f"  target:   {head.target.name} @ {revision.target_sha}")
        console.print(f"  origin:   {head.origin}")
    style = "green" if decision.is_trusted else "red"
    console.print(f"  trusted:  [{style}]{'yes' if decision.is_trusted else 'no'}[/{style}]")
    console.print(f"  build trust-sensitive files from: {decision.trusted.head.name} @ {decision.trusted.sha}")
