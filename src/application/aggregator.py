from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable, Union

from domain.models import BalancePoint, PeriodTotals, PlanType
from domain.schemas import AccountSnapshot, CalendarEntry, DateRange, FinancialPlan

ZERO = Decimal("0")

Amount = Union[Decimal, int, float, str]


def _plan_of(item: CalendarEntry | FinancialPlan) -> FinancialPlan:
    return item.resource if isinstance(item, CalendarEntry) else item


def _as_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats such as 0.1 do not drag binary noise along.
    return Decimal(str(value))


def day_key(value: date) -> str:
    return value.isoformat()


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def sum_by_type(
    entries: Iterable[CalendarEntry | FinancialPlan],
    plan_type: PlanType | str,
    only_incomplete: bool = False,
) -> Decimal:
    plan_type = PlanType(plan_type)
    total = ZERO
    for item in entries:
        plan = _plan_of(item)
        if plan.type != plan_type:
            continue
        if only_incomplete and plan.completed:
            continue
        total += plan.amount
    return total


def project_balance(current_balance: Amount, planned_income: Amount, planned_expense: Amount) -> Decimal:
    return _as_decimal(current_balance) + _as_decimal(planned_income) - _as_decimal(planned_expense)


def _anchor(entry: CalendarEntry, window: DateRange | None) -> date:
    """Day an entry is filed under; spans that began before the window land on its first day."""
    if window is not None and entry.start < window.start:
        return window.start
    return entry.start


def group_by_date(entries: Iterable[CalendarEntry], window: DateRange | None = None) -> dict[str, list[CalendarEntry]]:
    grouped: dict[str, list[CalendarEntry]] = defaultdict(list)
    for entry in entries:
        grouped[day_key(_anchor(entry, window))].append(entry)
    return dict(grouped)


def sum_by_category(
    plans: Iterable[CalendarEntry | FinancialPlan],
    category: str,
    plan_type: PlanType | str,
) -> Decimal:
    plan_type = PlanType(plan_type)
    return sum(
        (p.amount for p in map(_plan_of, plans) if p.category == category and p.type == plan_type),
        ZERO,
    )


def category_percentage(amount: Amount, total: Amount) -> float:
    """Share of `total` in percent, clamped to [0, 100]; a zero, negative or non-finite base gives 0."""
    try:
        numerator = _as_decimal(amount)
        denominator = _as_decimal(total)
    except (InvalidOperation, ValueError):
        return 0.0
    if not numerator.is_finite() or not denominator.is_finite() or denominator <= 0:
        return 0.0
    percent = float(numerator / denominator * 100)
    return min(max(percent, 0.0), 100.0)


def category_breakdown(
    plans: Iterable[CalendarEntry | FinancialPlan],
    plan_type: PlanType | str,
    total: Amount | None = None,
) -> list[dict[str, object]]:
    plan_type = PlanType(plan_type)
    items = [p for p in map(_plan_of, plans) if p.type == plan_type]
    categories = sorted({p.category for p in items})
    rows = [
        {"category": category, "amount": sum_by_category(items, category, plan_type)}
        for category in categories
    ]
    base = sum((row["amount"] for row in rows), ZERO) if total is None else _as_decimal(total)
    for row in rows:
        row["percentage"] = round(category_percentage(row["amount"], base), 2)
    return sorted(rows, key=lambda r: r["amount"], reverse=True)


def _totals_by(
    entries: Iterable[CalendarEntry],
    key_fn,
    only_incomplete: bool,
    window: DateRange | None,
) -> dict[str, PeriodTotals]:
    totals: dict[str, PeriodTotals] = defaultdict(PeriodTotals)
    for entry in entries:
        plan = entry.resource
        if only_incomplete and plan.completed:
            continue
        bucket = totals[key_fn(_anchor(entry, window))]
        bucket.entry_count += 1
        if plan.type == PlanType.INCOME:
            bucket.income += plan.amount
        else:
            bucket.expense += plan.amount
    return dict(totals)


def totals_by_day(
    entries: Iterable[CalendarEntry],
    only_incomplete: bool = False,
    window: DateRange | None = None,
) -> dict[str, PeriodTotals]:
    return _totals_by(entries, day_key, only_incomplete, window)


def totals_by_month(
    entries: Iterable[CalendarEntry],
    only_incomplete: bool = False,
    window: DateRange | None = None,
) -> dict[str, PeriodTotals]:
    return _totals_by(entries, month_key, only_incomplete, window)


def sum_for_day(entries: Iterable[CalendarEntry], day: date, plan_type: PlanType | str) -> Decimal:
    return sum_by_type([e for e in entries if e.start == day], plan_type)


def sum_for_month(entries: Iterable[CalendarEntry], year: int, month: int, plan_type: PlanType | str) -> Decimal:
    return sum_by_type([e for e in entries if e.start.year == year and e.start.month == month], plan_type)


def daily_balance_series(
    entries: Iterable[CalendarEntry],
    window: DateRange,
    opening_balance: Amount = ZERO,
    only_incomplete: bool = False,
) -> list[BalancePoint]:
    """Running balance for each day of `window`, starting from `opening_balance`."""
    per_day = totals_by_day(entries, only_incomplete=only_incomplete, window=window)
    running = _as_decimal(opening_balance)
    points: list[BalancePoint] = []
    current = window.start
    while current <= window.end:
        totals = per_day.get(day_key(current), PeriodTotals())
        running += totals.net
        points.append(BalancePoint(day=day_key(current), income=totals.income, expense=totals.expense, balance=running))
        current += timedelta(days=1)
    return points


def total_current_balance(accounts: Iterable[AccountSnapshot]) -> Decimal:
    return sum((a.current_balance for a in accounts), ZERO)


def resolve_account(plan: FinancialPlan, accounts: Iterable[AccountSnapshot]) -> AccountSnapshot | None:
    if not plan.account_id:
        return None
    for account in accounts:
        if account.id == plan.account_id:
            return account
    return None
