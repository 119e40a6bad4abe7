"""Detection service boundary: request mapping and the HTTP client."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

import httpx

from ipdrviz.config import IpdrConfig
from ipdrviz.detection.fallback import FallbackDetector
from ipdrviz.graph.filters import parse_timestamp, utc_now
from ipdrviz.session.models import AnomalyResult, Session

logger = logging.getLogger(__name__)

REQUEST_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
PREDICT_PATH = "/anomalies/predict"


class DetectionError(Exception):
    """The detection service could not produce a usable result."""


@runtime_checkable
class DetectionClient(Protocol):
    """Anything that can score a batch of detection requests."""

    async def detect(self, batch: Sequence[dict]) -> list[AnomalyResult]: ...

    async def fallback_detect(self, batch: Sequence[dict]) -> list[AnomalyResult]: ...


def build_request(session: Session, now: datetime | None = None) -> dict[str, Any]:
    """Map a session to the service's request record."""
    if session.timestamp:
        parsed = parse_timestamp(session.timestamp)
        timestamp = (
            parsed.strftime(REQUEST_TIME_FORMAT) if parsed else session.timestamp
        )
    else:
        timestamp = (now or utc_now()).strftime(REQUEST_TIME_FORMAT)

    return {
        "timestamp": timestamp,
        "session_id": session.session_id,
        "src_ip": session.src.ip,
        "src_port": session.src.port,
        "dst_ip": session.des.ip,
        "dst_port": session.des.port,
        "protocol": session.protocol,
        "duration_sec": session.duration,
        "bytes": session.bytes,
        "phone_number": str(session.src.phone),
        "cell_tower_lat": session.src.tower_lat,
        "cell_tower_lon": session.src.tower_lon,
    }


def parse_response(payload: Any, expected_ids: set[str]) -> list[AnomalyResult]:
    """Validate a response body; raise DetectionError if it is unusable.

    Every requested session must be present. Entries for sessions that
    were not requested are ignored.
    """
    if not isinstance(payload, list):
        raise DetectionError("Detection response is not a list")

    results: dict[str, AnomalyResult] = {}
    for item in payload:
        if not isinstance(item, dict):
            raise DetectionError("Detection response entry is not an object")
        try:
            session_id = str(item["session_id"])
            raw_anomaly = item["anomaly"]
            confidence = float(item["confidence_score"])
        except (KeyError, TypeError, ValueError) as exc:
            raise DetectionError(f"Malformed detection result: {item!r}") from exc
        # Checked before conversion so 0.9 is not truncated to 0
        if raw_anomaly not in (0, 1):
            raise DetectionError(
                f"Invalid anomaly flag for {session_id}: {raw_anomaly!r}"
            )
        if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
            raise DetectionError(
                f"Confidence out of range for {session_id}: {confidence}"
            )
        anomaly = int(raw_anomaly)
        if session_id in expected_ids:
            results[session_id] = AnomalyResult(
                session_id=session_id,
                anomaly=anomaly,
                confidence_score=confidence,
            )

    missing = expected_ids - results.keys()
    if missing:
        raise DetectionError(
            f"Detection response missing {len(missing)} of {len(expected_ids)} sessions"
        )
    return list(results.values())


class HttpDetectionClient:
    """Posts request batches to the remote anomaly-detection service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        fallback: FallbackDetector | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = base_url.rstrip("/") + PREDICT_PATH
        self._timeout = timeout
        self._fallback = fallback or FallbackDetector()
        self._client = client

    @classmethod
    def from_config(cls, config: IpdrConfig) -> HttpDetectionClient:
        return cls(
            base_url=config.detection_url,
            timeout=config.detection_timeout,
            fallback=FallbackDetector(
                seed=config.fallback_seed,
                delay=config.fallback_delay,
            ),
        )

    async def detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        expected = {str(req["session_id"]) for req in batch}
        try:
            if self._client is not None:
                response = await self._post(self._client, batch)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, batch)
        except httpx.TimeoutException as exc:
            raise DetectionError(
                "Request timeout. The service is taking too long to respond."
            ) from exc
        except httpx.HTTPError as exc:
            raise DetectionError(f"Failed to reach detection service: {exc}") from exc

        if response.status_code == 404:
            raise DetectionError("Anomaly detection service not found at " + self._url)
        if response.status_code >= 500:
            raise DetectionError("Anomaly detection service is temporarily unavailable")
        if not response.is_success:
            raise DetectionError(
                f"Detection service error: {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise DetectionError("Detection response is not valid JSON") from exc

        results = parse_response(payload, expected)
        logger.info("Detection service scored %d sessions", len(results))
        return results

    async def fallback_detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        return await self._fallback.detect(batch)

    async def _post(
        self, client: httpx.AsyncClient, batch: Sequence[dict]
    ) -> httpx.Response:
        return await client.post(
            self._url,
            json=list(batch),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )


class OfflineDetectionClient:
    """Never contacts the service; every batch goes to the fallback."""

    def __init__(self, fallback: FallbackDetector | None = None) -> None:
        self._fallback = fallback or FallbackDetector()

    async def detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        raise DetectionError("Offline mode: detection service disabled")

    async def fallback_detect(self, batch: Sequence[dict]) -> list[AnomalyResult]:
        return await self._fallback.detect(batch)
