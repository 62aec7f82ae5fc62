from __future__ import annotations

import logging
import time
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from application import aggregator
from application.plan_query import calendar_entries, filter_plans, make_window, sort_entries
from application.plan_store import PlanStore
from domain.errors import PlanValidationError
from domain.models import PlanType
from domain.schemas import CalendarEntry, DateRange, FinancialPlan, PlanFields, PlanSummary, PlanUpdate

logger = logging.getLogger(__name__)


def _balance(value: Any) -> Decimal:
    try:
        balance = Decimal(str(value if value is not None else 0))
    except InvalidOperation as exc:
        raise PlanValidationError(f"current_balance must be a number, got {value!r}", field="current_balance") from exc
    if not balance.is_finite():
        raise PlanValidationError("current_balance must be finite", field="current_balance")
    return balance


class PlanningService:
    """Inbound contract used by the calendar, summary and CLI surfaces for one session scope."""

    def __init__(self, store: PlanStore, currency_symbol: str | None = None):
        self._store = store
        self._currency_symbol = currency_symbol

    @property
    def store(self) -> PlanStore:
        return self._store

    # ---- writes ----
    def create_plan(self, fields: PlanFields | Mapping[str, Any]) -> FinancialPlan:
        return self._store.create(fields)

    def update_plan(self, plan_id: str, fields: PlanUpdate | Mapping[str, Any] | None = None) -> FinancialPlan:
        return self._store.update(plan_id, fields)

    def toggle_completed(self, plan_id: str) -> FinancialPlan:
        return self._store.toggle_completed(plan_id)

    def delete_plan(self, plan_id: str) -> bool:
        return self._store.delete(plan_id)

    # ---- reads ----
    def get_plan(self, plan_id: str) -> FinancialPlan:
        return self._store.get(plan_id)

    def list_plans(self) -> list[FinancialPlan]:
        return sorted(self._store.get_all(), key=lambda p: (p.start_date, p.title, p.id))

    def active_plans(self, start: Any, end: Any) -> list[FinancialPlan]:
        return filter_plans(self._store.get_all(), make_window(start, end))

    def query_plans(self, start: Any, end: Any) -> list[CalendarEntry]:
        window = make_window(start, end)
        t = time.perf_counter()
        entries = calendar_entries(self._store.get_all(), window, self._currency_symbol)
        logger.info(
            "PlanningService query scope=%s window=%s..%s entries=%d in %.3fs",
            self._store.scope_key,
            window.start,
            window.end,
            len(entries),
            time.perf_counter() - t,
        )
        return entries

    def summarize(self, start: Any, end: Any, current_balance: Any = 0) -> PlanSummary:
        balance = _balance(current_balance)
        entries = self.query_plans(start, end)
        planned_income = aggregator.sum_by_type(entries, PlanType.INCOME, only_incomplete=True)
        planned_expense = aggregator.sum_by_type(entries, PlanType.EXPENSE, only_incomplete=True)
        summary = PlanSummary(
            planned_income=planned_income,
            planned_expense=planned_expense,
            projected_balance=aggregator.project_balance(balance, planned_income, planned_expense),
        )
        logger.info(
            "PlanningService summary scope=%s income=%s expense=%s projected=%s",
            self._store.scope_key,
            summary.planned_income,
            summary.planned_expense,
            summary.projected_balance,
        )
        return summary

    def upcoming(self, today: date | None = None, days: int = 7) -> list[CalendarEntry]:
        today = today or date.today()
        window = DateRange(start=today, end=today + timedelta(days=max(days, 1) - 1))
        return sort_entries(calendar_entries(self._store.get_all(), window, self._currency_symbol))

    def overdue(self, today: date | None = None) -> list[FinancialPlan]:
        today = today or date.today()
        return [p for p in self.list_plans() if p.start_date < today and not p.completed]
