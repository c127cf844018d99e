"""Synchronization CLI for activitysync."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from activitysync.app.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    load_config,
    resolve_credentials,
)
from activitysync.infrastructure.observability import ProgressLog, configure_logging
from activitysync.services.sync_service import SyncService


@click.command(name="sync")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    type=click.Path(path_type=str),
    show_default=True,
    help="Path to the JSON config file.",
)
@click.option(
    "-u",
    "--username",
    help="Account email used to sign in. Overrides the config file.",
)
@click.option(
    "-p",
    "--password",
    help="Account password. Overrides the config file (prompted if omitted).",
)
@click.option(
    "-s",
    "--silent",
    is_flag=True,
    default=False,
    help="Suppress progress messages.",
)
@click.option(
    "--remember/--no-remember",
    default=False,
    show_default=True,
    help="Tick the 'remember me' box on the sign-in form.",
)
@click.pass_context
def sync(
    ctx: click.Context,
    config_path: str,
    username: str | None,
    password: str | None,
    silent: bool,
    remember: bool,
) -> None:
    """Sync new activities and their details into local JSON files.

    Activities are fetched newest first until the newest activity already
    stored locally is reached. Nothing is written when there is nothing new.
    """
    console = Console()
    configure_logging()
    log = ProgressLog(silent=silent)

    try:
        config = load_config(config_path)
        if username and not password and config.credentials is None:
            password = Prompt.ask("Password", password=True, console=console)
        credentials = resolve_credentials(config, username, password)
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        ctx.exit(1)

    service = SyncService(config, log=log)
    summary = asyncio.run(service.run_sync(credentials, remember=remember))

    if summary.status != "success":
        console.print(f"[red]Error during sync: {escape(summary.error or 'unknown error')}[/red]")
        ctx.exit(1)

    if not summary.summary_written:
        if not silent:
            console.print("[yellow]No new activities; nothing written.[/yellow]")
        return

    if not silent:
        console.print(
            f"[green]Sync {summary.status}[/green]: "
            f"new activities={summary.new_activities}, "
            f"detail files={summary.detail_files} -> {summary.summary_path}"
        )
