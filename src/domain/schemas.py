from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from domain.errors import InvariantViolation, PlanValidationError
from domain.models import PlanType, RecurringType


def coerce_calendar_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return value

    text = value.strip()
    if not text:
        return value

    # Canonical format first.
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%m-%d-%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    # ISO instants such as 2024-06-01T00:00:00.000Z keep their calendar-date part.
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return value


class DateRange(BaseModel):
    start: date = Field(description="Start date in YYYY-MM-DD format, e.g. 2026-01-31.")
    end: date = Field(description="End date in YYYY-MM-DD format, e.g. 2026-01-31.")

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return coerce_calendar_date(value)

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.start > self.end:
            raise InvariantViolation("start", "date_range.start must be <= date_range.end")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class PlanFields(BaseModel):
    """Every FinancialPlan field except the store-assigned id."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str
    description: Optional[str] = None
    amount: Decimal
    type: PlanType
    category: str
    start_date: date = Field(alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    is_recurring: bool = Field(default=False, alias="isRecurring")
    recurring_type: Optional[RecurringType] = Field(default=None, alias="recurringType")
    account_id: Optional[str] = Field(default=None, alias="accountId")
    completed: bool = False
    color: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any) -> Any:
        return coerce_calendar_date(value)

    @field_validator("title", "category")
    @classmethod
    def require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("amount")
    @classmethod
    def require_positive_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value <= 0:
            raise ValueError("amount must be greater than 0; use type for direction")
        return value

    @model_validator(mode="after")
    def validate_invariants(self) -> "PlanFields":
        if self.is_recurring and self.recurring_type is None:
            raise InvariantViolation("recurring_type", "recurring_type is required when is_recurring is true")
        if not self.is_recurring:
            self.recurring_type = None
        if self.end_date is not None and self.end_date < self.start_date:
            raise InvariantViolation("end_date", "end_date must not precede start_date")
        return self

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FinancialPlan(PlanFields):
    # Records coming back from a document store may carry bookkeeping keys ($id, $createdAt...).
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)


class PlanUpdate(BaseModel):
    """Partial update; only fields explicitly set are merged."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[PlanType] = None
    category: Optional[str] = None
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    is_recurring: Optional[bool] = Field(default=None, alias="isRecurring")
    recurring_type: Optional[RecurringType] = Field(default=None, alias="recurringType")
    account_id: Optional[str] = Field(default=None, alias="accountId")
    completed: Optional[bool] = None
    color: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any) -> Any:
        return coerce_calendar_date(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CalendarEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    start: date
    end: date
    all_day: bool = Field(default=True, alias="allDay")
    resource: FinancialPlan


class PlanSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    planned_income: Decimal = Field(default=Decimal("0"), alias="plannedIncome")
    planned_expense: Decimal = Field(default=Decimal("0"), alias="plannedExpense")
    projected_balance: Decimal = Field(default=Decimal("0"), alias="projectedBalance")

    @field_serializer("planned_income", "planned_expense", "projected_balance", when_used="json")
    def serialize_amounts(self, value: Decimal) -> float:
        return float(value)


class AccountSnapshot(BaseModel):
    """Read-only view of an externally owned bank/e-wallet account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    current_balance: Decimal = Field(default=Decimal("0"), alias="currentBalance")


class ReportContext(BaseModel):
    scope_key: str = "default"
    currency_symbol: Optional[str] = None


class ReportRequest(BaseModel):
    request_id: str
    report: str
    args: Dict[str, Any] = Field(default_factory=dict)
    context: ReportContext = Field(default_factory=ReportContext)


class ReportResponse(BaseModel):
    request_id: str
    report: str
    ok: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    context: ReportContext


def _field_name(model: type[BaseModel], loc_item: Any) -> str:
    name = str(loc_item)
    for field_name, info in model.model_fields.items():
        if info.alias == name:
            return field_name
    return name


def validation_error_from(exc: ValidationError, model: type[BaseModel]) -> PlanValidationError:
    """Collapse a pydantic ValidationError into the planning taxonomy, keeping the first offending field."""
    errors = exc.errors()
    if not errors:
        return PlanValidationError(str(exc))
    first = errors[0]
    loc = first.get("loc") or ()
    cause = (first.get("ctx") or {}).get("error")
    if loc:
        field = _field_name(model, loc[0])
    else:
        field = getattr(cause, "field", None)
    message = str(cause) if isinstance(cause, InvariantViolation) else first.get("msg", str(exc))
    if field and not isinstance(cause, InvariantViolation):
        message = f"{field}: {message}"
    return PlanValidationError(message, field=field)
