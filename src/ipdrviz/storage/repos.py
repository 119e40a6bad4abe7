"""History store: bounded, injected persistence for saved datasets."""

from __future__ import annotations

import json
import time
import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

import aiosqlite

from ipdrviz.session.models import HistoryEntry, Session

DEFAULT_HISTORY_LIMIT = 10


class HistoryStore(Protocol):
    """Where saved datasets live. The dashboard core never touches it."""

    async def save(self, entry: HistoryEntry) -> None: ...

    async def list(self) -> list[HistoryEntry]: ...

    async def delete(self, entry_id: str) -> bool: ...


def new_entry(
    sessions: Sequence[Session],
    anomaly_count: int = 0,
    name: str = "",
) -> HistoryEntry:
    """Build a history entry for the given dataset, stamped now."""
    now = datetime.now()
    return HistoryEntry(
        id=uuid.uuid4().hex[:12],
        name=name or f"Session {now.strftime('%Y-%m-%d %H:%M:%S')}",
        timestamp=now.isoformat(timespec="seconds"),
        session_count=len(sessions),
        anomaly_count=anomaly_count,
        sessions=list(sessions),
    )


class HistoryRepo:
    """SQLite-backed history keeping only the newest ``limit`` entries."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._db = db
        self._limit = limit

    async def save(self, entry: HistoryEntry) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO history_entries "
            "(id, name, timestamp, session_count, anomaly_count, "
            "sessions_json, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                entry.id,
                entry.name,
                entry.timestamp,
                entry.session_count,
                entry.anomaly_count,
                json.dumps([s.to_dict() for s in entry.sessions]),
                time.time(),
            ),
        )
        # Trim to the newest entries
        await self._db.execute(
            "DELETE FROM history_entries WHERE id NOT IN ("
            "  SELECT id FROM history_entries "
            "  ORDER BY created_at DESC, rowid DESC LIMIT ?"
            ")",
            (self._limit,),
        )
        await self._db.commit()

    async def list(self) -> list[HistoryEntry]:
        """Newest first, without the session payloads."""
        cursor = await self._db.execute(
            "SELECT id, name, timestamp, session_count, anomaly_count "
            "FROM history_entries ORDER BY created_at DESC, rowid DESC"
        )
        return [
            HistoryEntry(
                id=row["id"],
                name=row["name"],
                timestamp=row["timestamp"],
                session_count=row["session_count"],
                anomaly_count=row["anomaly_count"],
            )
            async for row in cursor
        ]

    async def get(self, entry_id: str) -> HistoryEntry | None:
        cursor = await self._db.execute(
            "SELECT * FROM history_entries WHERE id = ?", (entry_id,)
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return HistoryEntry(
            id=row["id"],
            name=row["name"],
            timestamp=row["timestamp"],
            session_count=row["session_count"],
            anomaly_count=row["anomaly_count"],
            sessions=[Session.from_dict(d) for d in json.loads(row["sessions_json"])],
        )

    async def delete(self, entry_id: str) -> bool:
        cursor = await self._db.execute(
            "DELETE FROM history_entries WHERE id = ?", (entry_id,)
        )
        await self._db.commit()
        return cursor.rowcount > 0
