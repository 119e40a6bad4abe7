"""CLI commands: ipdrviz history list|delete."""

from __future__ import annotations

import asyncio
import sys

import click
from rich.console import Console

from ipdrviz.cli.render import render_history
from ipdrviz.config import IpdrConfig
from ipdrviz.storage.db import get_db
from ipdrviz.storage.repos import HistoryRepo

console = Console(stderr=True)


@click.group()
def history() -> None:
    """Manage saved datasets."""


@history.command("list")
def list_entries() -> None:
    """List saved datasets, newest first."""
    config = IpdrConfig.load()

    async def _list():
        db = await get_db(config.db_path)
        try:
            return await HistoryRepo(db, limit=config.history_limit).list()
        finally:
            await db.close()

    entries = asyncio.run(_list())
    if not entries:
        console.print("[dim]No saved datasets.[/dim]")
        return
    Console().print(render_history(entries))


@history.command("delete")
@click.argument("entry_id")
def delete_entry(entry_id: str) -> None:
    """Delete a saved dataset by ID."""
    config = IpdrConfig.load()

    async def _delete() -> bool:
        db = await get_db(config.db_path)
        try:
            return await HistoryRepo(db, limit=config.history_limit).delete(entry_id)
        finally:
            await db.close()

    if not asyncio.run(_delete()):
        console.print(f"[red]No history entry {entry_id}[/red]")
        sys.exit(1)
    console.print(f"Deleted [cyan]{entry_id}[/cyan]")
