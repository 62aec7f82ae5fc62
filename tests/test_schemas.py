from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from domain.errors import PlanValidationError
from domain.models import PlanType
from domain.schemas import DateRange, FinancialPlan, PlanFields, PlanUpdate, validation_error_from


class DateRangeTests(unittest.TestCase):
    def test_accepts_several_date_formats(self) -> None:
        for raw in ("2026-01-31", "2026/01/31", "01/31/2026", "01-31-2026", "2026-01-31T09:30:00+09:00"):
            with self.subTest(raw=raw):
                self.assertEqual(DateRange(start=raw, end="2026-02-01").start, date(2026, 1, 31))

    def test_rejects_reversed_range(self) -> None:
        with self.assertRaises(ValidationError):
            DateRange(start="2026-02-01", end="2026-01-31")


class PlanFieldsTests(unittest.TestCase):
    def test_camel_and_snake_names_both_populate(self) -> None:
        camel = PlanFields.model_validate(
            {"title": "A", "amount": "10.50", "type": "expense", "category": "c", "startDate": "2024-06-01", "isRecurring": True, "recurringType": "daily"}
        )
        snake = PlanFields(title="A", amount=Decimal("10.50"), type=PlanType.EXPENSE, category="c", start_date=date(2024, 6, 1), is_recurring=True, recurring_type="daily")
        self.assertEqual(camel.model_dump(), snake.model_dump())

    def test_record_shape_is_json_friendly(self) -> None:
        plan = FinancialPlan(id="p1", title="A", amount=Decimal("10.50"), type="income", category="c", start_date=date(2024, 6, 1))
        record = plan.to_record()
        self.assertEqual(record["amount"], 10.5)
        self.assertEqual(record["type"], "income")
        self.assertIsNone(record["endDate"])
        self.assertEqual(FinancialPlan.model_validate(record).model_dump(), plan.model_dump())

    def test_titles_are_trimmed(self) -> None:
        plan = PlanFields(title="  Rent  ", amount=1, type="expense", category=" housing ", start_date=date(2024, 6, 1))
        self.assertEqual((plan.title, plan.category), ("Rent", "housing"))

    def test_validation_error_keeps_field_name(self) -> None:
        try:
            PlanFields.model_validate({"title": "A", "amount": 5, "type": "bonus", "category": "c", "startDate": "2024-06-01"})
        except ValidationError as exc:
            error = validation_error_from(exc, PlanFields)
        self.assertIsInstance(error, PlanValidationError)
        self.assertEqual(error.field, "type")
        self.assertEqual(error.to_dict()["error"], "validation_error")

    def test_update_tracks_only_set_fields(self) -> None:
        update = PlanUpdate.model_validate({"endDate": None, "completed": True})
        self.assertEqual(update.changes(), {"end_date": None, "completed": True})


if __name__ == "__main__":
    unittest.main()
