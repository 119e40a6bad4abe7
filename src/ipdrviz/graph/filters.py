"""Filter engine: compiles a FilterState into a session predicate.

All times are compared as naive UTC. Aware timestamps are converted to UTC,
naive ones are taken as already being UTC, and "now" comes from ``utc_now()``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, time, timezone

from ipdrviz.session.models import AnomalyResult, FilterState, Session

_END_OF_DAY = time(23, 59, 59)


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-ish timestamp into a naive datetime.

    Aware timestamps are converted to UTC before dropping the offset.
    Returns None when the value cannot be parsed.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def search_text(session: Session) -> str:
    """Lower-cased text the free-text search runs against."""
    return " ".join(
        [
            session.src.ip,
            session.des.ip,
            str(session.src.phone),
            str(session.des.phone),
            session.session_id,
            session.protocol,
        ]
    ).lower()


@dataclass
class SessionFilter:
    """A FilterState with its bounds pre-computed for fast evaluation."""

    state: FilterState
    anomalies: Mapping[str, AnomalyResult]
    now: datetime
    needle: str = ""
    start: datetime | None = None
    end: datetime | None = None

    @classmethod
    def compile(
        cls,
        state: FilterState,
        anomalies: Mapping[str, AnomalyResult],
        now: datetime | None = None,
    ) -> SessionFilter:
        start = datetime.combine(state.start_date, time.min) if state.start_date else None
        end = datetime.combine(state.end_date, _END_OF_DAY) if state.end_date else None
        return cls(
            state=state,
            anomalies=anomalies,
            now=now or utc_now(),
            needle=state.search.lower(),
            start=start,
            end=end,
        )

    def matches(self, session: Session) -> bool:
        """Conjunction of all predicates, cheapest first."""
        state = self.state

        if self.needle and self.needle not in search_text(session):
            return False

        if state.protocol and session.protocol != state.protocol:
            return False

        if session.bytes < state.min_bytes or session.bytes > state.max_bytes:
            return False

        if session.duration < state.min_duration or session.duration > state.max_duration:
            return False

        if self.start is not None or self.end is not None:
            if session.timestamp:
                when = parse_timestamp(session.timestamp)
            else:
                when = self.now
            # Unparseable timestamps impose no date constraint
            if when is not None:
                if self.start is not None and when < self.start:
                    return False
                if self.end is not None and when > self.end:
                    return False

        if state.show_anomalies_only:
            result = self.anomalies.get(session.session_id)
            if result is None or not result.is_anomaly:
                return False

        return True


def filter_sessions(
    sessions: Sequence[Session],
    anomalies: Mapping[str, AnomalyResult],
    state: FilterState,
    now: datetime | None = None,
) -> list[Session]:
    """Return the sessions matching ``state``, in input order."""
    session_filter = SessionFilter.compile(state, anomalies, now=now)
    return [s for s in sessions if session_filter.matches(s)]
