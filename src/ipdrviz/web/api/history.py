"""REST API for saved dataset history."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ipdrviz.storage.repos import new_entry

router = APIRouter(tags=["history"])


class HistorySave(BaseModel):
    name: str = ""


def _entry_not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "History entry not found"})


@router.get("/history")
async def list_history(request: Request):
    entries = await request.app.state.history.list()
    return [
        {k: v for k, v in asdict(e).items() if k != "sessions"} for e in entries
    ]


@router.post("/history")
async def save_history(body: HistorySave, request: Request):
    dashboard = request.app.state.dashboard
    if not dashboard.sessions:
        return JSONResponse(
            status_code=409,
            content={"detail": "No sessions loaded"},
        )
    entry = new_entry(
        dashboard.sessions,
        anomaly_count=dashboard.stats()["anomaly_count"],
        name=body.name,
    )
    await request.app.state.history.save(entry)
    return {"status": "saved", "id": entry.id, "name": entry.name}


@router.delete("/history/{entry_id}")
async def delete_history(entry_id: str, request: Request):
    if not await request.app.state.history.delete(entry_id):
        return _entry_not_found()
    return {"status": "deleted", "id": entry_id}


@router.post("/history/{entry_id}/load")
async def load_history(
    entry_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
):
    entry = await request.app.state.history.get(entry_id)
    if entry is None:
        return _entry_not_found()
    dashboard = request.app.state.dashboard
    generation = dashboard.load_dataset(entry.sessions)
    background_tasks.add_task(dashboard.analyze)
    return {
        "status": "loaded",
        "sessions": entry.session_count,
        "generation": generation,
    }
