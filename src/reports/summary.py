from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from application import aggregator
from application.plan_query import calendar_entries
from application.planning_service import PlanningService
from domain.errors import PlanValidationError
from domain.schemas import AccountSnapshot, ReportRequest, ReportResponse
from reports._window_support import WINDOW_ARGS_SCHEMA, bool_arg, decimal_arg, window_from_args, window_dict
from reports.base import Report, ReportSpec
from reports.registry import register_report


def _accounts(request: ReportRequest) -> list[AccountSnapshot]:
    raw = request.args.get("accounts") or []
    try:
        return [AccountSnapshot.model_validate(row) for row in raw]
    except ValidationError as exc:
        raise PlanValidationError(f"accounts: {exc.errors()[0].get('msg')}", field="accounts") from exc


@register_report
class SummaryReport(Report):
    name = "plans.summary"
    description = (
        "Planned income/expense of incomplete plans in the window and the projected balance. "
        "Current balance comes from `current_balance` or the sum of `accounts[].currentBalance`."
    )

    def run(self, request: ReportRequest, service: PlanningService) -> ReportResponse:
        window = window_from_args(request)
        accounts = _accounts(request)
        if accounts and "current_balance" not in request.args:
            current_balance = aggregator.total_current_balance(accounts)
        else:
            current_balance = decimal_arg(request, "current_balance")

        summary = service.summarize(window.start, window.end, current_balance)
        result: dict[str, Any] = summary.model_dump(mode="json", by_alias=True)
        result["currentBalance"] = float(current_balance)
        result["window"] = window_dict(window)
        return self.respond(request, result)

    def spec(self) -> ReportSpec:
        schema = dict(WINDOW_ARGS_SCHEMA)
        schema["current_balance"] = {"type": "number"}
        schema["accounts"] = {"type": "array", "items": {"type": "object"}}
        return ReportSpec(name=self.name, description=self.description, args_schema=schema)


@register_report
class PeriodTotalsReport(Report):
    name = "plans.period_totals"
    description = "Income/expense/net per day or per month (`group_by`: day|month) for the window."

    def run(self, request: ReportRequest, service: PlanningService) -> ReportResponse:
        window = window_from_args(request)
        group_by = str(request.args.get("group_by") or "day").lower()
        if group_by not in {"day", "month"}:
            return ReportResponse(
                request_id=request.request_id,
                report=self.name,
                ok=False,
                errors=["group_by must be 'day' or 'month'"],
                context=request.context,
            )

        entries = calendar_entries(service.store.get_all(), window)
        only_incomplete = bool_arg(request, "only_incomplete")
        if group_by == "day":
            totals = aggregator.totals_by_day(entries, only_incomplete=only_incomplete, window=window)
        else:
            totals = aggregator.totals_by_month(entries, only_incomplete=only_incomplete, window=window)

        result = {
            "window": window_dict(window),
            "group_by": group_by,
            "totals": {key: totals[key].as_dict() for key in sorted(totals)},
        }
        return self.respond(request, result)

    def spec(self) -> ReportSpec:
        schema = dict(WINDOW_ARGS_SCHEMA)
        schema["group_by"] = {"type": "string", "enum": ["day", "month"]}
        schema["only_incomplete"] = {"type": "boolean"}
        return ReportSpec(name=self.name, description=self.description, args_schema=schema)


@register_report
class DailyBalanceReport(Report):
    name = "plans.daily_balance"
    description = "Running balance for every day of the window starting from `opening_balance`."

    def run(self, request: ReportRequest, service: PlanningService) -> ReportResponse:
        window = window_from_args(request)
        opening = decimal_arg(request, "opening_balance")
        entries = calendar_entries(service.store.get_all(), window)
        points = aggregator.daily_balance_series(
            entries, window, opening, only_incomplete=bool_arg(request, "only_incomplete")
        )
        result = {
            "window": window_dict(window),
            "opening_balance": float(opening),
            "points": [
                {"day": p.day, "income": float(p.income), "expense": float(p.expense), "balance": float(p.balance)}
                for p in points
            ],
        }
        return self.respond(request, result)

    def spec(self) -> ReportSpec:
        schema = dict(WINDOW_ARGS_SCHEMA)
        schema["opening_balance"] = {"type": "number"}
        schema["only_incomplete"] = {"type": "boolean"}
        return ReportSpec(name=self.name, description=self.description, args_schema=schema)
