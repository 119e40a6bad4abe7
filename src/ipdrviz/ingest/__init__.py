"""Ingestion boundary: CSV loading and demo data."""

from ipdrviz.ingest.demo import generate_demo_sessions
from ipdrviz.ingest.loader import DEFAULTS, IngestError, load_csv, parse_csv

__all__ = ["DEFAULTS", "IngestError", "generate_demo_sessions", "load_csv", "parse_csv"]
