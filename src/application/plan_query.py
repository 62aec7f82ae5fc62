from __future__ import annotations

import os
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Iterator

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from domain.errors import InvalidRangeError, InvariantViolation
from domain.models import PlanType, RecurringType
from domain.schemas import CalendarEntry, DateRange, FinancialPlan


def make_window(start: Any, end: Any) -> DateRange:
    """Build an inclusive query window from dates or ISO strings."""
    try:
        return DateRange.model_validate({"start": start, "end": end})
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        cause = (first.get("ctx") or {}).get("error")
        if isinstance(cause, InvariantViolation):
            raise InvalidRangeError(f"Invalid range {start}..{end}: start must not be after end", field="start") from exc
        loc = first.get("loc") or ("start",)
        raise InvalidRangeError(f"Invalid range bound {loc[0]}: {first.get('msg', exc)}", field=str(loc[0])) from exc


def _step(recurring_type: RecurringType, index: int) -> timedelta | relativedelta:
    if recurring_type == RecurringType.DAILY:
        return timedelta(days=index)
    if recurring_type == RecurringType.WEEKLY:
        return timedelta(weeks=index)
    if recurring_type == RecurringType.MONTHLY:
        return relativedelta(months=index)
    return relativedelta(years=index)


def _first_index(plan: FinancialPlan, window_start: date) -> int:
    """Largest cadence index that cannot land after window_start; iteration catches up from there."""
    if window_start <= plan.start_date:
        return 0
    rtype = plan.recurring_type
    if rtype == RecurringType.DAILY:
        return (window_start - plan.start_date).days
    if rtype == RecurringType.WEEKLY:
        return (window_start - plan.start_date).days // 7
    months = (window_start.year - plan.start_date.year) * 12 + window_start.month - plan.start_date.month
    if rtype == RecurringType.MONTHLY:
        return max(months - 1, 0)
    return max(months // 12 - 1, 0)


def occurrence_dates(plan: FinancialPlan, window: DateRange) -> Iterator[date]:
    """
    Dates on which `plan` lands inside `window`.

    Non-recurring plans land once, on start_date. Recurring plans land every
    cadence unit from start_date (offsets are always taken from start_date, so
    a plan on the 31st lands on the last day of shorter months and returns to
    the 31st afterwards), up to end_date when set, otherwise up to the window end
    or the last representable date.
    """
    if not plan.is_recurring or plan.recurring_type is None:
        if window.contains(plan.start_date):
            yield plan.start_date
        return

    last = window.end if plan.end_date is None else min(plan.end_date, window.end)
    index = _first_index(plan, window.start)
    while True:
        try:
            current = plan.start_date + _step(plan.recurring_type, index)
        except (OverflowError, ValueError):
            # next cadence step is past date.max
            return
        if current > last:
            return
        if current >= window.start:
            yield current
        index += 1


def plan_in_window(plan: FinancialPlan, window: DateRange) -> bool:
    """
    Overlap test.

    A plan with an end date matches whenever [start_date, end_date] overlaps the
    window, however far back it started. A plan without one, recurring or not,
    matches only when start_date lies inside the window.
    """
    if plan.start_date > window.end:
        return False
    if plan.end_date is not None:
        return plan.end_date >= window.start
    return plan.start_date >= window.start


def filter_plans(plans: Iterable[FinancialPlan], window: DateRange) -> list[FinancialPlan]:
    return [plan for plan in plans if plan_in_window(plan, window)]


def format_amount(plan: FinancialPlan, currency_symbol: str | None = None) -> str:
    symbol = os.getenv("PLAN_CURRENCY_SYMBOL", "¥") if currency_symbol is None else currency_symbol
    sign = "+" if plan.type == PlanType.INCOME else "-"
    amount = plan.amount
    if amount == amount.to_integral_value():
        amount = amount.quantize(Decimal("1"))
    return f"{sign}{symbol}{amount:,}"


def entry_id(plan: FinancialPlan, occurrence: date) -> str:
    return f"{plan.id}:{occurrence.isoformat()}"


def expand_plan(plan: FinancialPlan, window: DateRange, currency_symbol: str | None = None) -> list[CalendarEntry]:
    """
    Calendar entries for a single plan.

    Recurring plans give one single-day entry per occurrence. A non-recurring
    plan gives one entry spanning start_date..end_date whenever it is active in
    the window, anchored at its own start_date even if that precedes the window.
    """
    title = f"{plan.title} ({format_amount(plan, currency_symbol)})"
    if not plan.is_recurring:
        if not plan_in_window(plan, window):
            return []
        spans = [(plan.start_date, plan.end_date or plan.start_date)]
    else:
        spans = [(day, day) for day in occurrence_dates(plan, window)]

    return [
        CalendarEntry(id=entry_id(plan, start), title=title, start=start, end=end, all_day=True, resource=plan)
        for start, end in spans
    ]


def calendar_entries(
    plans: Iterable[FinancialPlan],
    window: DateRange,
    currency_symbol: str | None = None,
) -> list[CalendarEntry]:
    entries: list[CalendarEntry] = []
    for plan in filter_plans(plans, window):
        entries.extend(expand_plan(plan, window, currency_symbol))
    return entries


def sort_entries(entries: Iterable[CalendarEntry]) -> list[CalendarEntry]:
    return sorted(entries, key=lambda e: (e.start, e.resource.title, e.id))
