"""Rich renderables for CLI output."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ipdrviz.graph.detail import NodeDetail, format_bytes, format_duration
from ipdrviz.graph.projection import GraphData
from ipdrviz.session.models import HistoryEntry


def render_stats(stats: dict[str, int], notice: str = "") -> Panel:
    line = (
        f"[bold]ipdrviz[/bold]  Sessions: {stats['total_sessions']}  "
        f"Shown: {stats['filtered_count']}  "
        f"Anomalies: [red]{stats['anomaly_count']}[/red]  "
        f"Protocols: {stats['protocols']}"
    )
    if notice:
        line += f"\n[dim]{notice}[/dim]"
    return Panel(Text.from_markup(line), style="bold")


def render_nodes(graph: GraphData, limit: int | None = None) -> Table:
    """Nodes in discovery order, anomalous ones highlighted."""
    table = Table(title="Endpoints", show_lines=False, expand=True)
    table.add_column("#", width=4, justify="right")
    table.add_column("Endpoint", style="cyan")
    table.add_column("Phone")
    table.add_column("Role", width=5)
    table.add_column("Sessions", justify="right")
    table.add_column("Anomaly", width=8)
    table.add_column("Confidence", justify="right")

    nodes = graph.nodes if limit is None else graph.nodes[:limit]
    for i, node in enumerate(nodes, 1):
        flag = "[red]yes[/red]" if node.is_anomaly else "[dim]no[/dim]"
        conf = (
            f"{node.confidence_score:.2f}" if node.confidence_score is not None else ""
        )
        table.add_row(
            str(i),
            node.id,
            node.name,
            "src" if node.group == 1 else "dst",
            str(node.session_count),
            flag,
            conf,
        )

    if limit is not None and len(graph.nodes) > limit:
        table.caption = f"{len(graph.nodes) - limit} more not shown"
    return table


def render_node_detail(detail: NodeDetail) -> Panel:
    node = detail.node
    lines = [
        f"[bold]Endpoint:[/bold] {node.id}",
        f"[bold]Phone:[/bold] {node.name}",
        f"[bold]Tower:[/bold] {node.tower_lat:.4f}, {node.tower_lon:.4f}",
        f"[bold]Connections:[/bold] {detail.connection_count}",
        f"[bold]Total data:[/bold] {format_bytes(detail.total_bytes)}",
        f"[bold]Total duration:[/bold] {format_duration(detail.total_duration)}",
    ]
    if node.is_anomaly:
        lines.append(
            f"[bold]Anomaly:[/bold] [red]flagged[/red] "
            f"(confidence {node.confidence_score:.2f}, "
            f"{detail.anomaly_links} anomalous link(s))"
        )
    else:
        lines.append("[bold]Anomaly:[/bold] [green]none[/green]")

    protocols = Table(box=None, show_header=True, header_style="bold")
    protocols.add_column("Protocol")
    protocols.add_column("Links", justify="right")
    protocols.add_column("Share", justify="right")
    for protocol, count in detail.protocols.items():
        share = count / detail.connection_count * 100
        protocols.add_row(protocol, str(count), f"{share:.0f}%")

    return Panel(
        Group(Text.from_markup("\n".join(lines)), Text(""), protocols),
        title="Node Detail",
        border_style="red" if node.is_anomaly else "blue",
    )


def render_history(entries: Sequence[HistoryEntry]) -> Table:
    table = Table(title="Saved datasets")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Saved")
    table.add_column("Sessions", justify="right")
    table.add_column("Anomalies", justify="right")
    for entry in entries:
        table.add_row(
            entry.id,
            entry.name,
            entry.timestamp,
            str(entry.session_count),
            str(entry.anomaly_count),
        )
    return table
