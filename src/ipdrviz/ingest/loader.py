"""CSV ingestion: lenient parsing of IPDR exports into Session records.

Rows are never rejected. Any missing, blank or unparseable field takes the
value from ``DEFAULTS`` (per-row defaults such as synthesized ids are
formatted with the row index). Ports and tower coordinates of 0 count as
missing too. Missing timestamps are stamped with the ingest time in naive UTC.
"""

from __future__ import annotations

import io
import logging
import math
from datetime import datetime
from pathlib import Path

import pandas as pd

from ipdrviz.graph.filters import utc_now
from ipdrviz.session.models import Endpoint, Session

logger = logging.getLogger(__name__)

DEFAULT_TOWER_LAT = 28.6139
DEFAULT_TOWER_LON = 77.209

DEFAULTS: dict[str, object] = {
    "session_id": "session-{index}",
    "protocol": "SIP",
    "duration": 0.0,
    "bytes": 0.0,
    "src_node_id": "src-{index}",
    "src_ip": "192.168.1.1",
    "src_port": 5060,
    "src_phone": 0,
    "src_tower_lat": DEFAULT_TOWER_LAT,
    "src_tower_lon": DEFAULT_TOWER_LON,
    "des_node_id": "des-{index}",
    "des_ip": "192.168.1.2",
    "des_port": 5060,
    "des_phone": 0,
    "des_tower_lat": DEFAULT_TOWER_LAT,
    "des_tower_lon": DEFAULT_TOWER_LON,
}

# A literal 0 in these columns is treated as missing and replaced by the default
_ZERO_IS_MISSING = frozenset(
    {
        "src_port",
        "des_port",
        "src_tower_lat",
        "src_tower_lon",
        "des_tower_lat",
        "des_tower_lon",
    }
)


class IngestError(Exception):
    """The input could not be read as CSV at all."""


def load_csv(path: str | Path) -> list[Session]:
    """Load sessions from a CSV file on disk."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise IngestError(f"Failed to read the CSV file: {path}") from exc
    return parse_csv(text)


def parse_csv(text: str, ingest_time: datetime | None = None) -> list[Session]:
    """Parse CSV text into sessions, applying DEFAULTS per field.

    Sessions without a timestamp are stamped with ``ingest_time`` (UTC now by
    default), so date filtering of them is stable afterwards.
    """
    if not text.strip():
        return []
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            index_col=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_keep_row,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise IngestError("Failed to parse CSV data. Please check the format.") from exc

    frame.columns = [str(c).strip() for c in frame.columns]
    stamp = (ingest_time or utc_now()).isoformat()

    sessions = [
        _row_to_session(row, index, stamp)
        for index, row in enumerate(frame.to_dict(orient="records"))
    ]
    logger.info("Parsed %d sessions from CSV", len(sessions))
    return sessions


def _keep_row(fields: list[str]) -> list[str]:
    # Over-long rows keep their leading columns; pandas drops the extras.
    # index_col=False stops an over-long first row from becoming an index.
    return fields


def _row_to_session(row: dict[str, str], index: int, stamp: str) -> Session:
    return Session(
        session_id=_text(row, "session_id", index),
        protocol=_text(row, "protocol", index),
        duration=_number(row, "duration"),
        bytes=_number(row, "bytes"),
        timestamp=_raw(row, "timestamp") or stamp,
        src=_endpoint(row, "src", index),
        des=_endpoint(row, "des", index),
    )


def _endpoint(row: dict[str, str], side: str, index: int) -> Endpoint:
    return Endpoint(
        node_id=_text(row, f"{side}_node_id", index),
        ip=_text(row, f"{side}_ip", index),
        port=_integer(row, f"{side}_port"),
        phone=_integer(row, f"{side}_phone"),
        tower_lat=_number(row, f"{side}_tower_lat"),
        tower_lon=_number(row, f"{side}_tower_lon"),
    )


def _raw(row: dict[str, str], column: str) -> str:
    value = row.get(column)
    # Short rows come back padded with NaN rather than ""
    return value.strip() if isinstance(value, str) else ""


def _text(row: dict[str, str], column: str, index: int) -> str:
    value = _raw(row, column)
    if value:
        return value
    return str(DEFAULTS[column]).format(index=index)


def _number(row: dict[str, str], column: str) -> float:
    default = float(DEFAULTS[column])  # type: ignore[arg-type]
    raw = _raw(row, column)
    try:
        value = float(raw)
    except ValueError:
        return default
    if not math.isfinite(value) or (value < 0 and column in ("duration", "bytes")):
        return default
    if value == 0 and column in _ZERO_IS_MISSING:
        return default
    return value


def _integer(row: dict[str, str], column: str) -> int:
    default = int(DEFAULTS[column])  # type: ignore[arg-type]
    raw = _raw(row, column)
    try:
        value = int(float(raw))
    except (ValueError, OverflowError):
        return default
    if value == 0 and column in _ZERO_IS_MISSING:
        return default
    return value
