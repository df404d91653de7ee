"""CLI entry point for headscan.

Commands:
  scan     run a full discovery pass and store the resulting head table
  heads    display the stored head table of a repository
  resolve  look up one head by display name and resolve its trusted revision
  event    apply a webhook payload to the stored head tables
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from headscan_cli.commands.event import event_cmd
from headscan_cli.commands.heads import heads_cmd
from headscan_cli.commands.resolve import resolve_cmd
from headscan_cli.commands.scan import scan_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .headscan.yml settings.

    Store selection hierarchy:
      store: sqlite → SQLiteStore (uses store_path or .headscan.db)
      store: memory → MemoryStore (lives as long as the process)
      (default)     → NoOpStore  (no persistence)

    This factory lives in cli.py so neither headscan_core nor headscan_store
    know about the CLI config format.
    """
    from headscan_store.noop import NoOpStore

    store_type = config.get("store", "noop")

    if store_type == "sqlite":
        from headscan_store.sqlite import SQLiteStore

        db_path = config.get("store_path") or ".headscan.db"
        return SQLiteStore(db_path=db_path)

    if store_type == "memory":
        from headscan_store.memory import MemoryStore

        return MemoryStore()

    if store_type != "noop":
        console.print(f"[yellow]Unknown store {store_type!r}. Falling back to no store.[/yellow]")
    return NoOpStore()


def _build_client(config: dict):
    from headscan_core.config import api_url_for
    from headscan_core.remote.github import GithubClient

    return GithubClient(token=config.get("token"), base_url=api_url_for(config))


@click.group()
@click.version_option(
    version=importlib.metadata.version("headscan"),
    prog_name="headscan",
)
@click.option(
    "--config",
    "config_path",
    default=".headscan.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="HEADSCAN_CONFIG",
)
@click.option("--server-url", default=None, help="Git server URL. Overrides config file.")
@click.option("--verbose", "-v", is_flag=True, help="Log discovery progress to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, server_url: str | None, verbose: bool):
    """Discover the buildable heads of hosted Git repositories."""
    from headscan_core.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)

    config = load_config(config_path, cli_overrides={"server_url": server_url})

    store = _build_store(config)
    client = _build_client(config)
    ctx.obj["store"] = store
    ctx.obj["client"] = client
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)
    ctx.call_on_close(client.close)


main.add_command(scan_cmd)
main.add_command(heads_cmd)
main.add_command(resolve_cmd)
main.add_command(event_cmd)
