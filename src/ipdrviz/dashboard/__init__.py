"""Interaction state orchestrating filtering, projection and analysis."""

from ipdrviz.dashboard.state import DashboardState

__all__ = ["DashboardState"]
