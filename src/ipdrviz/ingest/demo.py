"""Synthetic IPDR sessions for demos and first-run dashboards."""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from ipdrviz.graph.filters import utc_now
from ipdrviz.ingest.loader import DEFAULT_TOWER_LAT, DEFAULT_TOWER_LON
from ipdrviz.session.models import Endpoint, Session

DEMO_PROTOCOLS = ("SIP", "RTP", "HTTP", "HTTPS", "TCP")


def generate_demo_sessions(
    count: int = 50,
    seed: int | None = None,
    now: datetime | None = None,
) -> list[Session]:
    """Random sessions spread over the last seven days around one city."""
    rng = random.Random(seed)
    now = now or utc_now()
    sessions: list[Session] = []

    for i in range(count):
        offset = timedelta(seconds=rng.random() * 7 * 86400)
        sessions.append(
            Session(
                session_id=f"session-{i:03d}",
                protocol=rng.choice(DEMO_PROTOCOLS),
                duration=rng.random() * 10_000,
                bytes=rng.random() * 1_000_000_000,
                timestamp=(now - offset).isoformat(timespec="seconds"),
                src=_endpoint(rng, f"node-src-{i}"),
                des=_endpoint(rng, f"node-des-{i}"),
            )
        )
    return sessions


def _endpoint(rng: random.Random, node_id: str) -> Endpoint:
    return Endpoint(
        node_id=node_id,
        ip=f"192.168.{rng.randrange(255)}.{rng.randrange(255)}",
        port=rng.randrange(65535),
        phone=7_800_000_000 + rng.randrange(999_999),
        tower_lat=DEFAULT_TOWER_LAT + (rng.random() - 0.5) * 0.1,
        tower_lon=DEFAULT_TOWER_LON + (rng.random() - 0.5) * 0.1,
    )
