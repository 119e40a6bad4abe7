"""CLI command: ipdrviz analyze [CSV]: load, score, filter and summarize."""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime

import click
from rich.console import Console

from ipdrviz.cli.render import render_node_detail, render_nodes, render_stats
from ipdrviz.config import IpdrConfig
from ipdrviz.dashboard.state import DashboardState
from ipdrviz.detection.client import HttpDetectionClient, OfflineDetectionClient
from ipdrviz.detection.fallback import FallbackDetector
from ipdrviz.ingest import IngestError, generate_demo_sessions, load_csv
from ipdrviz.session.models import (
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_DURATION,
    FilterState,
)
from ipdrviz.storage.db import get_db
from ipdrviz.storage.repos import HistoryRepo, new_entry

console = Console(stderr=True)

_DATE = click.DateTime(formats=["%Y-%m-%d"])


@click.command()
@click.argument("csv_path", required=False, type=click.Path(exists=True))
@click.option("--demo", is_flag=True, help="Use generated demo sessions.")
@click.option("--offline", is_flag=True, help="Skip the detection service.")
@click.option("--search", "-s", default="", help="Free-text search.")
@click.option("--protocol", default="", help="Only this protocol.")
@click.option("--min-bytes", type=float, default=0)
@click.option("--max-bytes", type=float, default=DEFAULT_MAX_BYTES)
@click.option("--min-duration", type=float, default=0)
@click.option("--max-duration", type=float, default=DEFAULT_MAX_DURATION)
@click.option("--start-date", type=_DATE, default=None, help="YYYY-MM-DD")
@click.option("--end-date", type=_DATE, default=None, help="YYYY-MM-DD (inclusive)")
@click.option("--anomalies-only", is_flag=True, help="Only anomalous sessions.")
@click.option("--node", "node_id", default=None, help="Show detail for IP:PORT.")
@click.option("--limit", type=int, default=25, help="Max nodes to list.")
@click.option("--json", "as_json", is_flag=True, help="Print the graph as JSON.")
@click.option("--save", is_flag=True, help="Save the dataset to history.")
@click.pass_context
def analyze(
    ctx: click.Context,
    csv_path: str | None,
    demo: bool,
    offline: bool,
    search: str,
    protocol: str,
    min_bytes: float,
    max_bytes: float,
    min_duration: float,
    max_duration: float,
    start_date: datetime | None,
    end_date: datetime | None,
    anomalies_only: bool,
    node_id: str | None,
    limit: int,
    as_json: bool,
    save: bool,
) -> None:
    """Score IPDR sessions for anomalies and summarize the endpoint graph."""
    if not csv_path and not demo:
        console.print("[red]Give a CSV file or --demo.[/red]")
        sys.exit(1)

    config = IpdrConfig.load()
    try:
        sessions = load_csv(csv_path) if csv_path else generate_demo_sessions()
    except IngestError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)

    if offline:
        client = OfflineDetectionClient(
            FallbackDetector(seed=config.fallback_seed, delay=(0.0, 0.0))
        )
    else:
        client = HttpDetectionClient.from_config(config)

    dashboard = DashboardState(client=client)
    with console.status(f"Analyzing {len(sessions)} sessions..."):
        asyncio.run(dashboard.replace_and_analyze(sessions))

    dashboard.set_filters(
        FilterState(
            search=search,
            protocol=protocol,
            min_bytes=min_bytes,
            max_bytes=max_bytes,
            min_duration=min_duration,
            max_duration=max_duration,
            start_date=start_date.date() if start_date else None,
            end_date=end_date.date() if end_date else None,
            show_anomalies_only=anomalies_only,
        )
    )

    if as_json:
        click.echo(json.dumps(dashboard.graph.to_dict(), indent=2))
    else:
        out = Console()
        out.print(render_stats(dashboard.stats(), dashboard.notice))
        out.print(render_nodes(dashboard.graph, limit=limit))

    if node_id:
        try:
            dashboard.select_node(node_id)
        except KeyError:
            console.print(f"[red]Node {node_id} is not in the filtered graph.[/red]")
            sys.exit(1)
        Console().print(render_node_detail(dashboard.node_detail(node_id)))

    if save:
        entry_id = asyncio.run(_save(config, dashboard))
        console.print(f"Saved to history as [cyan]{entry_id}[/cyan]")


async def _save(config: IpdrConfig, dashboard: DashboardState) -> str:
    db = await get_db(config.db_path)
    try:
        entry = new_entry(
            dashboard.sessions,
            anomaly_count=dashboard.stats()["anomaly_count"],
        )
        await HistoryRepo(db, limit=config.history_limit).save(entry)
        return entry.id
    finally:
        await db.close()
