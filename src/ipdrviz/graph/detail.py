"""Per-node aggregates shown in the node detail panel."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from ipdrviz.graph.projection import GraphData, Link, Node

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


@dataclass
class NodeDetail:
    """A node plus statistics over the links that touch it."""

    node: Node
    links: list[Link] = field(default_factory=list)
    total_bytes: float = 0.0
    total_duration: float = 0.0
    anomaly_links: int = 0
    protocols: dict[str, int] = field(default_factory=dict)

    @property
    def connection_count(self) -> int:
        return len(self.links)

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "connections": self.connection_count,
            "total_bytes": self.total_bytes,
            "total_duration": self.total_duration,
            "anomaly_links": self.anomaly_links,
            "protocols": dict(self.protocols),
            "links": [link.to_dict() for link in self.links],
        }


def describe_node(graph: GraphData, node_id: str) -> NodeDetail:
    """Aggregate the links incident to ``node_id``.

    Raises KeyError if the node is not part of ``graph``.
    """
    node = graph.node(node_id)
    if node is None:
        raise KeyError(node_id)

    connected = [
        link for link in graph.links if link.source == node_id or link.target == node_id
    ]
    protocols = Counter(link.protocol for link in connected)

    return NodeDetail(
        node=node,
        links=connected,
        total_bytes=sum(link.bytes for link in connected),
        total_duration=sum(link.duration for link in connected),
        anomaly_links=sum(1 for link in connected if link.is_anomaly),
        protocols=dict(protocols.most_common()),
    )


def format_bytes(num_bytes: float) -> str:
    """Human-readable size using 1024-based units."""
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f}".rstrip("0").rstrip(".") + f" {_BYTE_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Render seconds as ``1h 2m 3s``, dropping leading zero units."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
