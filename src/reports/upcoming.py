from __future__ import annotations

from application.planning_service import PlanningService
from domain.schemas import ReportRequest, ReportResponse
from reports._window_support import today_from_args
from reports.base import Report, ReportSpec
from reports.registry import register_report


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@register_report
class UpcomingReport(Report):
    name = "plans.upcoming"
    description = "Entries for the next `days` days (default 7) from `today`, plus past-due incomplete plans."

    def run(self, request: ReportRequest, service: PlanningService) -> ReportResponse:
        today = today_from_args(request)
        days = _as_int(request.args.get("days"), 7)
        if days < 1 or days > 366:
            return ReportResponse(
                request_id=request.request_id,
                report=self.name,
                ok=False,
                errors=["days must be an integer from 1 to 366"],
                context=request.context,
            )

        entries = service.upcoming(today=today, days=days)
        overdue = service.overdue(today=today)
        result = {
            "today": today.isoformat(),
            "days": days,
            "entries": [e.model_dump(mode="json", by_alias=True) for e in entries],
            "overdue": [p.model_dump(mode="json", by_alias=True) for p in overdue],
        }
        return self.respond(request, result)

    def spec(self) -> ReportSpec:
        return ReportSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "days": {"type": "integer", "minimum": 1, "maximum": 366},
                "today": {"type": "string", "format": "date"},
            },
        )
