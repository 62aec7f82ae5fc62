from __future__ import annotations

from application import aggregator
from application.plan_query import calendar_entries
from application.planning_service import PlanningService
from domain.models import PlanType
from domain.schemas import ReportRequest, ReportResponse
from reports._window_support import WINDOW_ARGS_SCHEMA, decimal_arg, window_from_args, window_dict
from reports.base import Report, ReportSpec
from reports.registry import register_report


@register_report
class CategoryBreakdownReport(Report):
    name = "plans.category_breakdown"
    description = (
        "Planned amounts per category for one type (income|expense) in the window. "
        "Percentages are taken of `total` when given (e.g. current balance), else of the type total."
    )

    def run(self, request: ReportRequest, service: PlanningService) -> ReportResponse:
        raw_type = str(request.args.get("type") or PlanType.EXPENSE.value).lower()
        if raw_type not in {t.value for t in PlanType}:
            return ReportResponse(
                request_id=request.request_id,
                report=self.name,
                ok=False,
                errors=["type must be 'income' or 'expense'"],
                context=request.context,
            )

        window = window_from_args(request)
        total = decimal_arg(request, "total") if request.args.get("total") is not None else None
        entries = calendar_entries(service.store.get_all(), window)
        rows = aggregator.category_breakdown(entries, raw_type, total=total)
        result = {
            "window": window_dict(window),
            "type": raw_type,
            "categories": [
                {"category": r["category"], "amount": float(r["amount"]), "percentage": r["percentage"]} for r in rows
            ],
            "category_count": len(rows),
        }
        return self.respond(request, result)

    def spec(self) -> ReportSpec:
        schema = dict(WINDOW_ARGS_SCHEMA)
        schema["type"] = {"type": "string", "enum": [t.value for t in PlanType]}
        schema["total"] = {"type": "number"}
        return ReportSpec(name=self.name, description=self.description, args_schema=schema)
