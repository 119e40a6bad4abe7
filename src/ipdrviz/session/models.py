"""Session data models: IPDR records, anomaly results, and filter state."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any

DEFAULT_MAX_BYTES = 999_999_999
DEFAULT_MAX_DURATION = 99_999


class AnalysisStatus(enum.Enum):
    """Lifecycle state of the loaded dataset."""

    EMPTY = "empty"
    LOADED = "loaded"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"


@dataclass
class Endpoint:
    """One side of a session: an IP/port pair with its phone and tower."""

    node_id: str
    ip: str
    port: int
    phone: int = 0
    tower_lat: float = 0.0
    tower_lon: float = 0.0

    @property
    def key(self) -> str:
        """Graph identity of this endpoint."""
        return f"{self.ip}:{self.port}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Endpoint:
        return cls(
            node_id=str(data.get("node_id", "")),
            ip=str(data["ip"]),
            port=int(data["port"]),
            phone=int(data.get("phone", 0)),
            tower_lat=float(data.get("tower_lat", 0.0)),
            tower_lon=float(data.get("tower_lon", 0.0)),
        )


@dataclass
class Session:
    """A single recorded communication event between two endpoints."""

    session_id: str
    protocol: str
    duration: float
    bytes: float
    src: Endpoint
    des: Endpoint
    timestamp: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            session_id=str(data["session_id"]),
            protocol=str(data.get("protocol", "")),
            duration=float(data.get("duration", 0.0)),
            bytes=float(data.get("bytes", 0.0)),
            src=Endpoint.from_dict(data["src"]),
            des=Endpoint.from_dict(data["des"]),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class AnomalyResult:
    """Detection outcome for one session."""

    session_id: str
    anomaly: int
    confidence_score: float

    @property
    def is_anomaly(self) -> bool:
        return self.anomaly == 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FilterState:
    """User-selected predicates over the session list.

    Ranges are inclusive and deliberately not validated: an inverted
    range matches nothing.
    """

    search: str = ""
    protocol: str = ""
    min_bytes: float = 0
    max_bytes: float = DEFAULT_MAX_BYTES
    min_duration: float = 0
    max_duration: float = DEFAULT_MAX_DURATION
    start_date: date | None = None
    end_date: date | None = None
    show_anomalies_only: bool = False

    def update(self, **changes: Any) -> FilterState:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat() if self.start_date else None
        data["end_date"] = self.end_date.isoformat() if self.end_date else None
        return data


AnomalyMap = dict[str, AnomalyResult]


@dataclass
class HistoryEntry:
    """A saved dataset snapshot."""

    id: str
    name: str
    timestamp: str
    session_count: int
    anomaly_count: int
    sessions: list[Session] = field(default_factory=list)
