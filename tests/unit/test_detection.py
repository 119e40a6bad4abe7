"""Tests for the detection boundary: request mapping, HTTP client, fallback."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime

import httpx
import pytest

from ipdrviz.detection.client import (
    DetectionError,
    HttpDetectionClient,
    OfflineDetectionClient,
    build_request,
    parse_response,
)
from ipdrviz.detection.fallback import FallbackDetector, fallback_results
from ipdrviz.detection.merge import analyze_sessions


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _batch(n: int) -> list[dict]:
    return [{"session_id": f"s{i}"} for i in range(n)]


def _client_with(handler) -> HttpDetectionClient:
    return HttpDetectionClient(
        base_url="https://detector.test/api/v1/",
        fallback=FallbackDetector(delay=(0.0, 0.0)),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestBuildRequest:
    def test_field_mapping(self, make_session):
        session = make_session(
            "s1",
            src="10.0.0.1:5060",
            des="10.0.0.2:16384",
            protocol="RTP",
            duration=42.5,
            num_bytes=1234,
            timestamp="2024-03-10T08:15:00",
            src_phone=919800000001,
        )
        req = build_request(session)

        assert req == {
            "timestamp": "2024-03-10 08:15:00",
            "session_id": "s1",
            "src_ip": "10.0.0.1",
            "src_port": 5060,
            "dst_ip": "10.0.0.2",
            "dst_port": 16384,
            "protocol": "RTP",
            "duration_sec": 42.5,
            "bytes": 1234,
            "phone_number": "919800000001",
            "cell_tower_lat": 28.61,
            "cell_tower_lon": 77.20,
        }

    def test_missing_timestamp_uses_now(self, make_session):
        req = build_request(
            make_session(timestamp=None), now=datetime(2024, 1, 2, 3, 4, 5)
        )
        assert req["timestamp"] == "2024-01-02 03:04:05"

    def test_unparseable_timestamp_passes_through(self, make_session):
        req = build_request(make_session(timestamp="last tuesday"))
        assert req["timestamp"] == "last tuesday"


class TestParseResponse:
    def test_valid(self):
        payload = [
            {"session_id": "s0", "anomaly": 1, "confidence_score": 0.9},
            {"session_id": "s1", "anomaly": 0, "confidence_score": 0.2},
        ]
        results = parse_response(payload, {"s0", "s1"})
        assert {r.session_id: r.anomaly for r in results} == {"s0": 1, "s1": 0}

    def test_ignores_unrequested_sessions(self):
        payload = [
            {"session_id": "s0", "anomaly": 1, "confidence_score": 0.9},
            {"session_id": "zzz", "anomaly": 1, "confidence_score": 0.9},
        ]
        results = parse_response(payload, {"s0"})
        assert [r.session_id for r in results] == ["s0"]

    def test_incomplete_response_is_an_error(self):
        payload = [{"session_id": "s0", "anomaly": 1, "confidence_score": 0.9}]
        with pytest.raises(DetectionError, match="missing 1 of 2"):
            parse_response(payload, {"s0", "s1"})

    @pytest.mark.parametrize(
        "payload",
        [
            {"results": []},
            ["not-a-dict"],
            [{"session_id": "s0"}],
            [{"session_id": "s0", "anomaly": 2, "confidence_score": 0.5}],
            [{"session_id": "s0", "anomaly": "x", "confidence_score": 0.5}],
            [{"session_id": "s0", "anomaly": 0.9, "confidence_score": 0.5}],
            [{"session_id": "s0", "anomaly": 1, "confidence_score": 7.5}],
            [{"session_id": "s0", "anomaly": 1, "confidence_score": -0.1}],
            [{"session_id": "s0", "anomaly": 0, "confidence_score": float("nan")}],
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(DetectionError):
            parse_response(payload, {"s0"})


class TestHttpDetectionClient:
    def test_posts_whole_batch(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(
                200,
                request=request,
                json=[
                    {"session_id": r["session_id"], "anomaly": 1, "confidence_score": 0.8}
                    for r in body
                ],
            )

        results = run_async(_client_with(handler).detect(_batch(3)))

        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/v1/anomalies/predict"
        assert len(json.loads(seen[0].content)) == 3
        assert [r.session_id for r in results] == ["s0", "s1", "s2"]
        assert all(r.is_anomaly for r in results)

    @pytest.mark.parametrize("status", [404, 422, 500, 503])
    def test_non_2xx_raises(self, status):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, request=request, text="nope")

        with pytest.raises(DetectionError):
            run_async(_client_with(handler).detect(_batch(2)))

    def test_timeout_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(DetectionError, match="timeout"):
            run_async(_client_with(handler).detect(_batch(2)))

    def test_connection_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DetectionError):
            run_async(_client_with(handler).detect(_batch(2)))

    def test_invalid_json_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, request=request, text="<html>")

        with pytest.raises(DetectionError, match="JSON"):
            run_async(_client_with(handler).detect(_batch(1)))

    @pytest.mark.parametrize(
        "entry,match",
        [
            ({"session_id": "s0", "anomaly": 0.9, "confidence_score": 0.5}, "anomaly flag"),
            ({"session_id": "s0", "anomaly": 1, "confidence_score": 7.5}, "out of range"),
        ],
    )
    def test_out_of_range_values_raise(self, entry, match):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, request=request, json=[entry])

        with pytest.raises(DetectionError, match=match):
            run_async(_client_with(handler).detect(_batch(1)))

    def test_boundary_confidences_accepted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                request=request,
                json=[
                    {"session_id": "s0", "anomaly": 0, "confidence_score": 0},
                    {"session_id": "s1", "anomaly": 1, "confidence_score": 1},
                ],
            )

        results = run_async(_client_with(handler).detect(_batch(2)))
        assert [(r.anomaly, r.confidence_score) for r in results] == [(0, 0.0), (1, 1.0)]


class TestFallback:
    def test_one_result_per_request_within_bounds(self):
        batch = _batch(200)
        results = fallback_results(batch)

        assert [r.session_id for r in results] == [r["session_id"] for r in batch]
        assert all(r.anomaly in (0, 1) for r in results)
        assert all(0.7 <= r.confidence_score <= 1.0 for r in results)

    def test_is_deterministic(self):
        batch = _batch(50)
        assert fallback_results(batch) == fallback_results(batch)
        assert fallback_results(batch, seed=7) == fallback_results(batch, seed=7)

    def test_rate_is_roughly_fifteen_percent(self):
        results = fallback_results(_batch(2000), seed="rate")
        flagged = sum(r.anomaly for r in results)
        assert 200 < flagged < 400

    def test_detector_without_delay(self):
        detector = FallbackDetector(seed="x", delay=(0.0, 0.0))
        results = run_async(detector.detect(_batch(5)))
        assert len(results) == 5


class TestAnalyzeSessions:
    def test_success_uses_service(self, make_session, stub_client_cls):
        client = stub_client_cls(flagged={"s1": 0.9})
        sessions = [make_session("s1"), make_session("s2")]

        outcome = run_async(analyze_sessions(client, sessions))

        assert not outcome.used_fallback
        assert outcome.anomaly_count == 1
        assert outcome.results["s1"].confidence_score == 0.9
        assert client.fallback_batches == []

    def test_failure_falls_back_to_complete_mapping(self, make_session, failing_client):
        sessions = [make_session(f"s{i}") for i in range(20)]

        outcome = run_async(analyze_sessions(failing_client, sessions))

        assert outcome.used_fallback
        assert "simulated outage" in outcome.error
        assert set(outcome.results) == {s.session_id for s in sessions}
        for result in outcome.results.values():
            assert result.anomaly in (0, 1)
            assert 0.7 <= result.confidence_score <= 1.0

    def test_http_outage_falls_back(self, make_session):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, request=request)

        sessions = [make_session("a"), make_session("b")]
        outcome = run_async(analyze_sessions(_client_with(handler), sessions))

        assert outcome.used_fallback
        assert set(outcome.results) == {"a", "b"}

    def test_offline_client_always_falls_back(self, make_session):
        client = OfflineDetectionClient(FallbackDetector(delay=(0.0, 0.0)))
        outcome = run_async(analyze_sessions(client, [make_session("a")]))
        assert outcome.used_fallback
        assert set(outcome.results) == {"a"}

    def test_empty_sessions(self, stub_client):
        outcome = run_async(analyze_sessions(stub_client, []))
        assert outcome.results == {}
        assert stub_client.batches == []
