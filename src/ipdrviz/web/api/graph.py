"""REST API for the filtered graph, filters, analysis and node selection."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from ipdrviz.session.models import (
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_DURATION,
    FilterState,
)

router = APIRouter(tags=["graph"])


class FilterBody(BaseModel):
    search: str = ""
    protocol: str = ""
    min_bytes: float = 0
    max_bytes: float = DEFAULT_MAX_BYTES
    min_duration: float = 0
    max_duration: float = DEFAULT_MAX_DURATION
    start_date: date | None = None
    end_date: date | None = None
    show_anomalies_only: bool = False

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _blank_date(cls, value):
        # The filter form sends "" for an unset date
        return None if value == "" else value

    def to_state(self) -> FilterState:
        return FilterState(**self.model_dump())


def _node_not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Node not found"})


@router.get("/graph")
async def get_graph(request: Request):
    dashboard = request.app.state.dashboard
    graph = dashboard.graph.to_dict()
    graph["selected_node_id"] = dashboard.selected_node_id
    graph["show_anomalies_only"] = dashboard.filters.show_anomalies_only
    return graph


@router.get("/stats")
async def get_stats(request: Request):
    return request.app.state.dashboard.stats()


@router.get("/filters")
async def get_filters(request: Request):
    return request.app.state.dashboard.filters.to_dict()


@router.put("/filters")
async def update_filters(body: FilterBody, request: Request):
    dashboard = request.app.state.dashboard
    dashboard.set_filters(body.to_state())
    return {"filters": dashboard.filters.to_dict(), **dashboard.stats()}


@router.delete("/filters")
async def reset_filters(request: Request):
    dashboard = request.app.state.dashboard
    dashboard.reset_filters()
    return dashboard.filters.to_dict()


@router.post("/analyze")
async def analyze(request: Request, background_tasks: BackgroundTasks):
    dashboard = request.app.state.dashboard
    if not dashboard.sessions:
        return JSONResponse(
            status_code=409,
            content={"detail": "No sessions loaded"},
        )
    if dashboard.is_analyzing:
        return {"status": "already_running", **dashboard.summary()}
    background_tasks.add_task(dashboard.analyze)
    return {"status": "scheduled", "generation": dashboard.generation}


@router.get("/analysis")
async def get_analysis(request: Request):
    return request.app.state.dashboard.summary()


@router.put("/selection/{node_id}")
async def select_node(node_id: str, request: Request):
    dashboard = request.app.state.dashboard
    try:
        dashboard.select_node(node_id)
    except KeyError:
        return _node_not_found()
    return dashboard.node_detail(node_id).to_dict()


@router.delete("/selection")
async def clear_selection(request: Request):
    request.app.state.dashboard.clear_selection()
    return {"status": "cleared"}


@router.get("/nodes/{node_id}")
async def get_node(node_id: str, request: Request):
    try:
        detail = request.app.state.dashboard.node_detail(node_id)
    except KeyError:
        return _node_not_found()
    return detail.to_dict()
