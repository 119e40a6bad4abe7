"""Graph projection: folds a session list into deduplicated nodes and links."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ipdrviz.session.models import AnomalyResult, Endpoint, Session

SOURCE_GROUP = 1
DESTINATION_GROUP = 2


@dataclass
class Node:
    """A deduplicated endpoint, keyed by ``ip:port``."""

    id: str
    name: str
    group: int
    phone: int
    ip: str
    tower_lat: float
    tower_lon: float
    session_count: int = 0
    is_anomaly: bool = False
    confidence_score: float | None = None

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint, group: int) -> Node:
        return cls(
            id=endpoint.key,
            name=str(endpoint.phone),
            group=group,
            phone=endpoint.phone,
            ip=endpoint.ip,
            tower_lat=endpoint.tower_lat,
            tower_lon=endpoint.tower_lon,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "phone": self.phone,
            "ip": self.ip,
            "tower_lat": self.tower_lat,
            "tower_lon": self.tower_lon,
            "sessionCount": self.session_count,
            "isAnomaly": self.is_anomaly,
            "confidence_score": self.confidence_score,
        }


@dataclass
class Link:
    """One rendered edge; exactly one per session."""

    source: str
    target: str
    value: float
    session_id: str
    protocol: str
    duration: float
    bytes: float
    is_anomaly: bool = False
    confidence_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "value": self.value,
            "session_id": self.session_id,
            "protocol": self.protocol,
            "duration": self.duration,
            "bytes": self.bytes,
            "isAnomaly": self.is_anomaly,
            "confidence_score": self.confidence_score,
        }


@dataclass
class GraphData:
    """Projection output consumed verbatim by the renderer."""

    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }


def link_weight(num_bytes: float) -> float:
    """Log-scaled edge weight, ``log(bytes) / 10``, clamped to 0 below one byte."""
    if not math.isfinite(num_bytes) or num_bytes < 1:
        return 0.0
    return math.log(num_bytes) / 10


def project(
    sessions: Sequence[Session],
    anomalies: Mapping[str, AnomalyResult] | None = None,
) -> GraphData:
    """Build the graph for ``sessions`` in a single left-to-right fold.

    Nodes come out in first-discovery order. Static node fields are taken
    from the first session that mentions the endpoint. A node touched by
    an anomalous session is flagged and carries that session's confidence;
    later anomalous sessions overwrite it (last write wins).
    """
    anomalies = anomalies or {}
    nodes: dict[str, Node] = {}
    links: list[Link] = []

    for session in sessions:
        src_node = nodes.get(session.src.key)
        if src_node is None:
            src_node = Node.from_endpoint(session.src, SOURCE_GROUP)
            nodes[src_node.id] = src_node

        des_node = nodes.get(session.des.key)
        if des_node is None:
            des_node = Node.from_endpoint(session.des, DESTINATION_GROUP)
            nodes[des_node.id] = des_node

        src_node.session_count += 1
        des_node.session_count += 1

        result = anomalies.get(session.session_id)
        is_anomaly = result is not None and result.is_anomaly
        if is_anomaly:
            for node in (src_node, des_node):
                node.is_anomaly = True
                node.confidence_score = result.confidence_score

        links.append(
            Link(
                source=src_node.id,
                target=des_node.id,
                value=link_weight(session.bytes),
                session_id=session.session_id,
                protocol=session.protocol,
                duration=session.duration,
                bytes=session.bytes,
                is_anomaly=is_anomaly,
                confidence_score=result.confidence_score if result else None,
            )
        )

    return GraphData(nodes=list(nodes.values()), links=links)
