from __future__ import annotations

import logging
import time
from typing import Callable

from application.planning_service import PlanningService
from domain.errors import PlanningError
from domain.schemas import ReportRequest, ReportResponse
from reports.registry import ReportRegistry

logger = logging.getLogger(__name__)


class ReportExecutor:
    def __init__(self, registry: ReportRegistry, service_for_scope: Callable[[str], PlanningService]):
        self._registry = registry
        self._service_for_scope = service_for_scope

    def run(self, request: ReportRequest) -> ReportResponse:
        logger.info("ReportExecutor running request_id=%s report=%s scope=%s", request.request_id, request.report, request.context.scope_key)
        t = time.perf_counter()
        try:
            report = self._registry.get_report(request.report)
        except KeyError as exc:
            return self._failure(request, str(exc.args[0]))

        try:
            response = report.run(request, self._service_for_scope(request.context.scope_key))
        except PlanningError as exc:
            logger.warning("ReportExecutor rejected request_id=%s report=%s kind=%s: %s", request.request_id, request.report, exc.kind, exc.message)
            response = self._failure(request, f"{exc.kind}: {exc.message}")
        except Exception as exc:
            logger.exception("ReportExecutor failed request_id=%s report=%s", request.request_id, request.report)
            response = self._failure(request, str(exc) or exc.__class__.__name__)
        logger.info("ReportExecutor finished request_id=%s report=%s in %.2fs ok=%s", request.request_id, request.report, time.perf_counter() - t, response.ok)
        return response

    def _failure(self, request: ReportRequest, message: str) -> ReportResponse:
        return ReportResponse(
            request_id=request.request_id,
            report=request.report,
            ok=False,
            errors=[message],
            context=request.context,
        )
