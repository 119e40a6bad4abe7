"""Anomaly detection boundary: HTTP client, local fallback, and merge."""

from ipdrviz.detection.client import (
    DetectionClient,
    DetectionError,
    HttpDetectionClient,
    OfflineDetectionClient,
    build_request,
)
from ipdrviz.detection.fallback import FallbackDetector, fallback_results
from ipdrviz.detection.merge import AnalysisOutcome, analyze_sessions

__all__ = [
    "AnalysisOutcome",
    "DetectionClient",
    "DetectionError",
    "FallbackDetector",
    "HttpDetectionClient",
    "OfflineDetectionClient",
    "analyze_sessions",
    "build_request",
    "fallback_results",
]
