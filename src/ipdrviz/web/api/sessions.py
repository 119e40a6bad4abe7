"""REST API for loading and listing the session dataset."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse

from ipdrviz.ingest import IngestError, generate_demo_sessions, parse_csv

router = APIRouter(tags=["sessions"])


@router.get("/sessions")
async def list_sessions(request: Request):
    dashboard = request.app.state.dashboard
    return [s.to_dict() for s in dashboard.sessions]


@router.post("/sessions/upload")
async def upload_sessions(request: Request, background_tasks: BackgroundTasks):
    """Replace the dataset with a raw CSV body and analyze it."""
    body = await request.body()
    try:
        sessions = parse_csv(body.decode("utf-8", errors="replace"))
    except IngestError as exc:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    dashboard = request.app.state.dashboard
    generation = dashboard.load_dataset(sessions)
    background_tasks.add_task(dashboard.analyze)
    return {"status": "loaded", "sessions": len(sessions), "generation": generation}


@router.post("/sessions/demo")
async def load_demo(
    request: Request,
    background_tasks: BackgroundTasks,
    count: int = 50,
):
    dashboard = request.app.state.dashboard
    generation = dashboard.load_dataset(generate_demo_sessions(count))
    background_tasks.add_task(dashboard.analyze)
    return {"status": "loaded", "sessions": count, "generation": generation}
