"""Tests for node detail aggregation and formatting helpers."""

from __future__ import annotations

import pytest

from ipdrviz.graph.detail import describe_node, format_bytes, format_duration
from ipdrviz.graph.projection import project
from ipdrviz.session.models import AnomalyResult


def test_describe_node_aggregates_incident_links(make_session):
    sessions = [
        make_session("a", src="1.1.1.1:1", des="2.2.2.2:2", protocol="SIP", duration=30, num_bytes=100),
        make_session("b", src="2.2.2.2:2", des="3.3.3.3:3", protocol="RTP", duration=90, num_bytes=400),
        make_session("c", src="3.3.3.3:3", des="1.1.1.1:1", protocol="SIP", duration=5, num_bytes=50),
    ]
    graph = project(sessions, {"b": AnomalyResult("b", 1, 0.8)})

    detail = describe_node(graph, "2.2.2.2:2")

    assert detail.connection_count == 2
    assert [link.session_id for link in detail.links] == ["a", "b"]
    assert detail.total_bytes == 500
    assert detail.total_duration == 120
    assert detail.anomaly_links == 1
    assert detail.protocols == {"SIP": 1, "RTP": 1}
    assert detail.to_dict()["node"]["isAnomaly"] is True


def test_describe_unknown_node(two_way_sessions):
    with pytest.raises(KeyError):
        describe_node(project(two_way_sessions), "9.9.9.9:9")


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1 MB"),
        (5 * 1024**3, "5 GB"),
    ],
)
def test_format_bytes(value, expected):
    assert format_bytes(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(0, "0s"), (59, "59s"), (61, "1m 1s"), (3723, "1h 2m 3s")],
)
def test_format_duration(value, expected):
    assert format_duration(value) == expected
