from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class PlanType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class RecurringType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class PlanChange:
    """Emitted by the plan store after a write has been acknowledged."""

    kind: ChangeKind
    scope_key: str
    plan: Any


@dataclass
class PeriodTotals:
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    entry_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.expense

    def as_dict(self) -> dict[str, Any]:
        return {
            "income": float(self.income),
            "expense": float(self.expense),
            "net": float(self.net),
            "entry_count": self.entry_count,
        }


@dataclass
class BalancePoint:
    day: str
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
