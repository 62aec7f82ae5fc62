from __future__ import annotations

from calendar import monthrange
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from application.plan_query import make_window
from domain.errors import PlanValidationError
from domain.schemas import DateRange, ReportRequest, coerce_calendar_date

WINDOW_ARGS_SCHEMA: dict[str, Any] = {
    "date_range": {
        "type": "object",
        "properties": {"start": {"type": "string", "format": "date"}, "end": {"type": "string", "format": "date"}},
        "description": "Inclusive window. Defaults to the current calendar month.",
    }
}


def current_month_window(today: date | None = None) -> DateRange:
    today = today or date.today()
    return DateRange(start=date(today.year, today.month, 1), end=date(today.year, today.month, monthrange(today.year, today.month)[1]))


def window_from_args(request: ReportRequest) -> DateRange:
    raw = request.args.get("date_range")
    if isinstance(raw, dict) and raw.get("start") and raw.get("end"):
        return make_window(raw["start"], raw["end"])
    if request.args.get("start") and request.args.get("end"):
        return make_window(request.args["start"], request.args["end"])
    return current_month_window(today_from_args(request))


def today_from_args(request: ReportRequest) -> date:
    raw = coerce_calendar_date(request.args.get("today"))
    return raw if isinstance(raw, date) else date.today()


def decimal_arg(request: ReportRequest, key: str, default: str = "0") -> Decimal:
    raw = request.args.get(key, default)
    try:
        value = Decimal(str(raw if raw is not None else default))
    except InvalidOperation as exc:
        raise PlanValidationError(f"{key} must be a number, got {raw!r}", field=key) from exc
    if not value.is_finite():
        raise PlanValidationError(f"{key} must be finite", field=key)
    return value


def window_dict(window: DateRange) -> dict[str, str]:
    return {"start": window.start.isoformat(), "end": window.end.isoformat()}


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


def bool_arg(request: ReportRequest, key: str, default: bool = False) -> bool:
    raw = request.args.get(key, default)
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str) and raw.strip().lower() in _TRUE | _FALSE:
        return raw.strip().lower() in _TRUE
    raise PlanValidationError(f"{key} must be a boolean, got {raw!r}", field=key)
