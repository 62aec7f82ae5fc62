from __future__ import annotations

import os
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from application.plan_query import sort_entries
from application.planning_service import PlanningService
from domain.errors import InvalidRangeError, PlanNotFoundError, PlanningError, PlanValidationError, StorageUnavailableError
from domain.schemas import ReportContext, ReportRequest
from infrastructure.plan_backends import PlanBackend, build_backend
from infrastructure.persistence.view_cache import ViewCache
from interface.cli import build_executor, build_service
from reports.registry import registry

_STATUS_BY_ERROR: dict[type[PlanningError], int] = {
    PlanValidationError: 422,
    PlanNotFoundError: 404,
    InvalidRangeError: 400,
    StorageUnavailableError: 503,
}


class ReportBody(BaseModel):
    request_id: str = "req_api"
    args: Dict[str, Any] = Field(default_factory=dict)


def _status_for(exc: PlanningError) -> int:
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


def create_app(backend: PlanBackend | None = None) -> FastAPI:
    app = FastAPI(title="Financial Plan Calendar API")
    app.state.backend = backend or build_backend()
    app.state.view_cache = ViewCache()
    app.state.currency_symbol = os.getenv("PLAN_CURRENCY_SYMBOL", "¥")
    app.state.executor = build_executor(app.state.backend, app.state.view_cache)

    @app.exception_handler(PlanningError)
    async def planning_error_handler(request: Request, exc: PlanningError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content=exc.to_dict())

    def service(request: Request, x_plan_scope: Optional[str] = Header(default=None)) -> PlanningService:
        state = request.app.state
        return build_service(state.backend, x_plan_scope or "default", state.view_cache, state.currency_symbol)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/plans")
    def list_plans(svc: PlanningService = Depends(service)) -> dict:
        return {"plans": [p.model_dump(mode="json", by_alias=True) for p in svc.list_plans()]}

    @app.get("/plans/{plan_id}")
    def get_plan(plan_id: str, svc: PlanningService = Depends(service)) -> dict:
        return svc.get_plan(plan_id).model_dump(mode="json", by_alias=True)

    @app.post("/plans", status_code=201)
    def create_plan(fields: Dict[str, Any], svc: PlanningService = Depends(service)) -> dict:
        return svc.create_plan(fields).model_dump(mode="json", by_alias=True)

    @app.patch("/plans/{plan_id}")
    def update_plan(plan_id: str, fields: Dict[str, Any], svc: PlanningService = Depends(service)) -> dict:
        return svc.update_plan(plan_id, fields).model_dump(mode="json", by_alias=True)

    @app.post("/plans/{plan_id}/toggle")
    def toggle_plan(plan_id: str, svc: PlanningService = Depends(service)) -> dict:
        return svc.toggle_completed(plan_id).model_dump(mode="json", by_alias=True)

    @app.delete("/plans/{plan_id}")
    def delete_plan(plan_id: str, svc: PlanningService = Depends(service)) -> dict:
        return {"id": plan_id, "deleted": svc.delete_plan(plan_id)}

    @app.get("/calendar")
    def calendar(start: str = Query(...), end: str = Query(...), svc: PlanningService = Depends(service)) -> dict:
        entries = sort_entries(svc.query_plans(start, end))
        return {"entries": [e.model_dump(mode="json", by_alias=True) for e in entries]}

    @app.get("/summary")
    def summary(
        request: Request,
        start: str = Query(...),
        end: str = Query(...),
        current_balance: str = Query("0"),
        svc: PlanningService = Depends(service),
    ) -> dict:
        cache: ViewCache = request.app.state.view_cache
        key = f"summary:{start}:{end}:{current_balance}"
        cached = cache.get(svc.store.scope_key, key)
        if cached is not None:
            return cached
        payload = svc.summarize(start, end, current_balance).model_dump(mode="json", by_alias=True)
        cache.put(svc.store.scope_key, key, payload)
        return payload

    @app.get("/reports")
    def list_reports() -> dict:
        return {"reports": [spec.__dict__ for spec in registry.list_specs()]}

    @app.post("/reports/{name}")
    def run_report(
        name: str,
        body: ReportBody,
        request: Request,
        x_plan_scope: Optional[str] = Header(default=None),
    ) -> dict:
        report_request = ReportRequest(
            request_id=body.request_id,
            report=name,
            args=body.args,
            context=ReportContext(scope_key=x_plan_scope or "default", currency_symbol=request.app.state.currency_symbol),
        )
        response = request.app.state.executor.run(report_request)
        return response.model_dump(mode="json")

    return app


app = create_app()
