"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from ipdrviz.detection.client import DetectionError
from ipdrviz.detection.fallback import fallback_results
from ipdrviz.session.models import AnomalyResult, Endpoint, Session


def _make_session(
    session_id: str = "s1",
    src: str = "10.0.0.1:5060",
    des: str = "10.0.0.2:5060",
    protocol: str = "SIP",
    duration: float = 60.0,
    num_bytes: float = 1000.0,
    timestamp: str | None = "2024-03-10T12:00:00",
    src_phone: int = 9876500001,
    des_phone: int = 9876500002,
) -> Session:
    src_ip, src_port = src.rsplit(":", 1)
    des_ip, des_port = des.rsplit(":", 1)
    return Session(
        session_id=session_id,
        protocol=protocol,
        duration=duration,
        bytes=num_bytes,
        timestamp=timestamp,
        src=Endpoint(
            node_id=f"src-{session_id}",
            ip=src_ip,
            port=int(src_port),
            phone=src_phone,
            tower_lat=28.61,
            tower_lon=77.20,
        ),
        des=Endpoint(
            node_id=f"des-{session_id}",
            ip=des_ip,
            port=int(des_port),
            phone=des_phone,
            tower_lat=28.62,
            tower_lon=77.21,
        ),
    )


class StubDetectionClient:
    """Deterministic stand-in for the detection service."""

    def __init__(
        self,
        flagged: dict[str, float] | None = None,
        fail: bool = False,
    ) -> None:
        self.flagged = flagged or {}
        self.fail = fail
        self.batches: list[list[dict]] = []
        self.fallback_batches: list[list[dict]] = []

    async def detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        self.batches.append(list(batch))
        if self.fail:
            raise DetectionError("simulated outage")
        return [
            AnomalyResult(
                session_id=req["session_id"],
                anomaly=1 if req["session_id"] in self.flagged else 0,
                confidence_score=self.flagged.get(req["session_id"], 0.1),
            )
            for req in batch
        ]

    async def fallback_detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        self.fallback_batches.append(list(batch))
        return fallback_results(batch, seed="test")


@pytest.fixture
def make_session() -> Callable[..., Session]:
    return _make_session


@pytest.fixture
def two_way_sessions() -> list[Session]:
    """A→B with 500 bytes, then B→A with 2,000,000 bytes."""
    return [
        _make_session("s1", src="10.0.0.1:5060", des="10.0.0.2:5060", num_bytes=500),
        _make_session(
            "s2", src="10.0.0.2:5060", des="10.0.0.1:5060", num_bytes=2_000_000
        ),
    ]


@pytest.fixture
def stub_client() -> StubDetectionClient:
    return StubDetectionClient()


@pytest.fixture
def failing_client() -> StubDetectionClient:
    return StubDetectionClient(fail=True)


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_csv_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "sample_ipdr.csv"


@pytest.fixture
def stub_client_cls() -> type[StubDetectionClient]:
    return StubDetectionClient
