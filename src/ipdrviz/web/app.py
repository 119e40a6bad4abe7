"""FastAPI application factory for the ipdrviz dashboard."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ipdrviz import __version__
from ipdrviz.config import IpdrConfig
from ipdrviz.dashboard.state import DashboardState
from ipdrviz.detection.client import DetectionClient, HttpDetectionClient
from ipdrviz.storage.db import get_db
from ipdrviz.storage.repos import HistoryRepo

_FRONTEND_DIR = Path(__file__).parent / "frontend"


async def create_app(
    config: IpdrConfig | None = None,
    client: DetectionClient | None = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or IpdrConfig.load()

    app = FastAPI(
        title="ipdrviz",
        version=__version__,
        docs_url="/api/docs",
    )

    # One dashboard per process; the dataset lives in memory only
    app.state.config = config
    app.state.dashboard = DashboardState(
        client=client or HttpDetectionClient.from_config(config)
    )
    app.state.db = await get_db(config.db_path)
    app.state.history = HistoryRepo(app.state.db, limit=config.history_limit)

    # Register API routers
    from ipdrviz.web.api.graph import router as graph_router
    from ipdrviz.web.api.history import router as history_router
    from ipdrviz.web.api.sessions import router as sessions_router

    app.include_router(sessions_router, prefix="/api")
    app.include_router(graph_router, prefix="/api")
    app.include_router(history_router, prefix="/api")

    # Serve the 3D frontend if one has been built into the package
    if _FRONTEND_DIR.is_dir():
        app.mount(
            "/",
            StaticFiles(directory=str(_FRONTEND_DIR), html=True),
            name="frontend",
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        if hasattr(app.state, "db"):
            await app.state.db.close()

    return app
