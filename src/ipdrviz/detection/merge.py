"""Anomaly merge: one detection round-trip producing a complete result map."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ipdrviz.detection.client import DetectionClient, DetectionError, build_request
from ipdrviz.session.models import AnomalyMap, Session

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    """Result of one analysis attempt."""

    results: AnomalyMap = field(default_factory=dict)
    used_fallback: bool = False
    error: str = ""

    @property
    def anomaly_count(self) -> int:
        return sum(1 for r in self.results.values() if r.is_anomaly)


async def analyze_sessions(
    client: DetectionClient,
    sessions: Sequence[Session],
    now: datetime | None = None,
) -> AnalysisOutcome:
    """Score every session, falling back locally if the service fails.

    The returned map always holds exactly one entry per session; it is
    meant to replace the previous map wholesale.
    """
    batch = [build_request(s, now=now) for s in sessions]
    if not batch:
        return AnalysisOutcome()

    try:
        results = await client.detect(batch)
        used_fallback = False
        error = ""
    except DetectionError as exc:
        logger.warning("Detection service failed, using fallback: %s", exc)
        results = await client.fallback_detect(batch)
        used_fallback = True
        error = str(exc)

    mapping: AnomalyMap = {r.session_id: r for r in results}
    return AnalysisOutcome(results=mapping, used_fallback=used_fallback, error=error)
