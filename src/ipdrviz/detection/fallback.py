"""Local stand-in for the detection service when it cannot be reached."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Sequence

from ipdrviz.session.models import AnomalyResult

logger = logging.getLogger(__name__)

ANOMALY_RATE = 0.15
CONFIDENCE_RANGE = (0.7, 1.0)


def fallback_results(
    batch: Sequence[dict],
    seed: str | int | None = None,
) -> list[AnomalyResult]:
    """Synthesize one result per request in ``batch``.

    Each session is flagged with probability ANOMALY_RATE and gets a
    confidence drawn uniformly from CONFIDENCE_RANGE. The generator is
    seeded with ``seed`` or, when absent, with the batch's session ids,
    so the same batch always yields the same results.
    """
    if seed is None:
        seed = "|".join(str(req["session_id"]) for req in batch)
    rng = random.Random(seed)
    low, high = CONFIDENCE_RANGE

    results: list[AnomalyResult] = []
    for req in batch:
        anomaly = 1 if rng.random() < ANOMALY_RATE else 0
        confidence = low + rng.random() * (high - low)
        results.append(
            AnomalyResult(
                session_id=str(req["session_id"]),
                anomaly=anomaly,
                confidence_score=confidence,
            )
        )
    return results


class FallbackDetector:
    """Deterministic fallback with an artificial service-like delay."""

    def __init__(
        self,
        seed: str | int | None = None,
        delay: tuple[float, float] = (1.0, 3.0),
    ) -> None:
        self._seed = seed
        self._delay = delay

    async def detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        low, high = self._delay
        if high > 0:
            await asyncio.sleep(random.uniform(low, high))
        results = fallback_results(batch, seed=self._seed)
        logger.info(
            "Fallback detection flagged %d of %d sessions",
            sum(1 for r in results if r.is_anomaly),
            len(results),
        )
        return results
