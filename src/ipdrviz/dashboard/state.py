"""Dashboard state: single owner of the dataset and everything derived from it."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ipdrviz.detection.client import DetectionClient
from ipdrviz.detection.merge import AnalysisOutcome, analyze_sessions
from ipdrviz.graph.detail import NodeDetail, describe_node
from ipdrviz.graph.filters import filter_sessions
from ipdrviz.graph.projection import GraphData, project
from ipdrviz.session.models import (
    AnalysisStatus,
    AnomalyMap,
    FilterState,
    Session,
)

logger = logging.getLogger(__name__)


@dataclass
class DashboardState:
    """Interaction state behind the dashboard.

    All mutation goes through this object on a single event loop. The only
    suspension point is ``analyze()``; while it awaits the detection
    service, filter edits and selection changes keep working.

    Every dataset replacement bumps ``generation``. An analysis remembers
    the generation it started on and drops its result if the dataset has
    been replaced in the meantime.
    """

    client: DetectionClient
    filters: FilterState = field(default_factory=FilterState)
    status: AnalysisStatus = AnalysisStatus.EMPTY
    selected_node_id: str | None = None
    notice: str = ""
    generation: int = 0

    _sessions: list[Session] = field(default_factory=list)
    _anomalies: AnomalyMap = field(default_factory=dict)
    _anomaly_version: int = 0
    _inflight: int | None = None
    _cache_key: tuple | None = None
    _cached_filtered: list[Session] = field(default_factory=list)
    _cached_graph: GraphData = field(default_factory=GraphData)

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def anomalies(self) -> AnomalyMap:
        return dict(self._anomalies)

    @property
    def is_analyzing(self) -> bool:
        return self.status == AnalysisStatus.ANALYZING

    # --- Dataset lifecycle ---

    def load_dataset(self, sessions: Sequence[Session]) -> int:
        """Replace the whole dataset and return its generation.

        Prior anomaly results and the selected node are discarded because
        they refer to the old dataset.
        """
        self.generation += 1
        self._sessions = list(sessions)
        self._anomalies = {}
        self._anomaly_version += 1
        self.selected_node_id = None
        self.status = AnalysisStatus.LOADED if self._sessions else AnalysisStatus.EMPTY
        self.notice = f"{len(self._sessions)} sessions loaded."
        logger.info(
            "Loaded dataset %d with %d sessions", self.generation, len(self._sessions)
        )
        return self.generation

    async def analyze(self) -> AnalysisOutcome | None:
        """Run detection over the whole current dataset.

        Returns None when there is nothing to analyze, an analysis of
        the same dataset is already running, or the dataset was replaced
        before the result arrived.
        """
        if not self._sessions:
            return None

        generation = self.generation
        if self._inflight == generation:
            logger.info("Analysis already running for dataset %d, ignored", generation)
            return None

        previous_status = self.status
        self._inflight = generation
        self.status = AnalysisStatus.ANALYZING
        sessions = list(self._sessions)

        try:
            outcome = await analyze_sessions(self.client, sessions)
        except Exception:
            logger.exception("Anomaly analysis failed for dataset %d", generation)
            if generation == self.generation:
                self.status = previous_status
                self.notice = "Failed to analyze sessions for anomalies."
            return None
        finally:
            if self._inflight == generation:
                self._inflight = None

        if generation != self.generation:
            logger.info(
                "Dropping stale analysis for dataset %d (current is %d)",
                generation,
                self.generation,
            )
            return None

        self._anomalies = outcome.results
        self._anomaly_version += 1
        self.status = AnalysisStatus.ANALYZED
        summary = (
            f"Found {outcome.anomaly_count} anomalies out of "
            f"{len(outcome.results)} sessions."
        )
        if outcome.used_fallback:
            self.notice = (
                "Anomaly detection API unavailable. Using demo results. " + summary
            )
        else:
            self.notice = summary
        return outcome

    async def replace_and_analyze(
        self, sessions: Sequence[Session]
    ) -> AnalysisOutcome | None:
        """Load a new dataset and analyze it right away."""
        self.load_dataset(sessions)
        return await self.analyze()

    # --- Filters ---

    def set_filters(self, filters: FilterState) -> None:
        self.filters = filters

    def reset_filters(self) -> None:
        self.filters = FilterState()

    @property
    def filtered_sessions(self) -> list[Session]:
        self._refresh()
        return list(self._cached_filtered)

    @property
    def graph(self) -> GraphData:
        self._refresh()
        return self._cached_graph

    def _refresh(self) -> None:
        key = (self.generation, self.filters, self._anomaly_version)
        if key == self._cache_key:
            return
        filtered = filter_sessions(self._sessions, self._anomalies, self.filters)
        self._cached_filtered = filtered
        self._cached_graph = project(filtered, self._anomalies)
        self._cache_key = key

    # --- Selection ---

    def select_node(self, node_id: str) -> None:
        """Select a node of the current graph; KeyError if it is absent."""
        if self.graph.node(node_id) is None:
            raise KeyError(node_id)
        self.selected_node_id = node_id

    def clear_selection(self) -> None:
        self.selected_node_id = None

    def node_detail(self, node_id: str) -> NodeDetail:
        return describe_node(self.graph, node_id)

    def selected_detail(self) -> NodeDetail | None:
        """Detail of the selected node, or None if it is filtered out."""
        if self.selected_node_id is None:
            return None
        try:
            return self.node_detail(self.selected_node_id)
        except KeyError:
            return None

    # --- Summary ---

    def stats(self) -> dict[str, int]:
        return {
            "total_sessions": len(self._sessions),
            "filtered_count": len(self.filtered_sessions),
            "anomaly_count": sum(1 for r in self._anomalies.values() if r.is_anomaly),
            "protocols": len({s.protocol for s in self._sessions}),
        }

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "analyzing": self.is_analyzing,
            "generation": self.generation,
            "notice": self.notice,
            "selected_node_id": self.selected_node_id,
        }
