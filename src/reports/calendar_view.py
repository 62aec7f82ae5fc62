from __future__ import annotations

from application import aggregator
from application.plan_query import calendar_entries, sort_entries
from application.planning_service import PlanningService
from domain.schemas import ReportRequest, ReportResponse
from reports._window_support import WINDOW_ARGS_SCHEMA, window_from_args, window_dict
from reports.base import Report, ReportSpec
from reports.registry import register_report


@register_report
class CalendarReport(Report):
    name = "plans.calendar"
    description = "Calendar entries for the window, with recurring plans expanded, grouped by YYYY-MM-DD day."

    def run(self, request: ReportRequest, service: PlanningService) -> ReportResponse:
        window = window_from_args(request)
        symbol = request.context.currency_symbol
        entries = sort_entries(calendar_entries(service.store.get_all(), window, symbol))
        by_date = aggregator.group_by_date(entries, window)
        result = {
            "window": window_dict(window),
            "entry_count": len(entries),
            "entries": [e.model_dump(mode="json", by_alias=True) for e in entries],
            "by_date": {day: [e.id for e in day_entries] for day, day_entries in sorted(by_date.items())},
        }
        return self.respond(request, result)

    def spec(self) -> ReportSpec:
        return ReportSpec(name=self.name, description=self.description, args_schema=dict(WINDOW_ARGS_SCHEMA))
