from __future__ import annotations

import unittest
from unittest.mock import patch

import reports  # noqa: F401
from application.plan_store import PlanStore
from application.planning_service import PlanningService
from application.report_executor import ReportExecutor
from domain.errors import StorageUnavailableError
from domain.schemas import ReportContext, ReportRequest, ReportResponse
from infrastructure.plan_backends.memory import InMemoryPlanBackend
from reports.registry import ReportRegistry, registry


class _FakeReport:
    name = "fake_report"

    def run(self, request: ReportRequest, service) -> ReportResponse:
        return ReportResponse(
            request_id=request.request_id,
            report=self.name,
            result={"echo": request.args, "scope": service.store.scope_key},
            context=request.context,
        )


class ReportRegistryTests(unittest.TestCase):
    def test_builtin_reports_self_register_on_import(self) -> None:
        names = {spec.name for spec in registry.list_specs()}
        self.assertTrue(
            {
                "plans.calendar",
                "plans.summary",
                "plans.period_totals",
                "plans.daily_balance",
                "plans.category_breakdown",
                "plans.upcoming",
            }.issubset(names)
        )

    def test_register_and_get_report(self) -> None:
        local = ReportRegistry()
        report = _FakeReport()
        local.register(report)
        self.assertIs(local.get_report("fake_report"), report)

    def test_get_missing_report_raises_key_error(self) -> None:
        with self.assertRaises(KeyError):
            ReportRegistry().get_report("missing")

    def test_duplicate_report_name_is_rejected(self) -> None:
        local = ReportRegistry()
        first = _FakeReport()
        local.register(first)
        local.register(first)

        with self.assertRaises(ValueError):
            local.register(_FakeReport())
        self.assertIs(local.get_report("fake_report"), first)

    def test_report_without_name_is_rejected(self) -> None:
        nameless = _FakeReport()
        nameless.name = "  "
        with self.assertRaises(ValueError):
            ReportRegistry().register(nameless)

    def test_specs_are_listed_by_name(self) -> None:
        names = [spec.name for spec in registry.list_specs()]
        self.assertEqual(names, sorted(names))
        self.assertIn("plans.calendar", registry)

    def test_report_request_schema_shape(self) -> None:
        request = ReportRequest.model_validate(
            {
                "request_id": "req_01",
                "report": "plans.summary",
                "args": {"date_range": {"start": "2024-06-01", "end": "2024-06-30"}, "current_balance": 5000},
                "context": {"scope_key": "u_123"},
            }
        )
        self.assertEqual(request.context.scope_key, "u_123")
        self.assertIsNone(request.context.currency_symbol)


class BuiltinReportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = InMemoryPlanBackend()
        seed = PlanStore(self.backend, "u_123")
        seed.create({"title": "Salary", "amount": 300000, "type": "income", "category": "salary", "startDate": "2024-06-25"})
        seed.create({"title": "Rent", "amount": 80000, "type": "expense", "category": "housing", "startDate": "2024-06-01"})
        seed.create(
            {
                "title": "Lunch",
                "amount": 1000,
                "type": "expense",
                "category": "food",
                "startDate": "2024-06-03",
                "isRecurring": True,
                "recurringType": "weekly",
            }
        )
        seed.create({"title": "Paid", "amount": 5000, "type": "expense", "category": "food", "startDate": "2024-06-02", "completed": True})
        self.executor = ReportExecutor(registry, lambda scope: PlanningService(PlanStore(self.backend, scope)))

    def _run(self, report: str, args: dict | None = None) -> ReportResponse:
        return self.executor.run(
            ReportRequest(
                request_id=f"req:{report}",
                report=report,
                args=args or {},
                context=ReportContext(scope_key="u_123", currency_symbol="¥"),
            )
        )

    def _june(self, **extra) -> dict:
        args = {"date_range": {"start": "2024-06-01", "end": "2024-06-30"}}
        args.update(extra)
        return args

    def test_calendar_groups_entries_by_day(self) -> None:
        res = self._run("plans.calendar", self._june())

        self.assertTrue(res.ok)
        self.assertEqual(res.result["entry_count"], 7)
        self.assertEqual(res.result["entries"][0]["start"], "2024-06-01")
        self.assertIn("2024-06-24", res.result["by_date"])
        self.assertEqual(len(res.result["by_date"]["2024-06-24"]), 1)
        self.assertEqual(res.result["entries"][0]["title"], "Rent (-¥80,000)")

    def test_summary_from_accounts(self) -> None:
        res = self._run(
            "plans.summary",
            self._june(accounts=[{"id": "a1", "currentBalance": 100000}, {"id": "a2", "currentBalance": 50000}]),
        )

        self.assertTrue(res.ok)
        self.assertEqual(res.result["currentBalance"], 150000.0)
        self.assertEqual(res.result["plannedIncome"], 300000.0)
        # Rent plus four weekly lunches; the completed plan is excluded.
        self.assertEqual(res.result["plannedExpense"], 84000.0)
        self.assertEqual(res.result["projectedBalance"], 366000.0)

    def test_summary_rejects_non_numeric_balance(self) -> None:
        res = self._run("plans.summary", self._june(current_balance="abc"))
        self.assertFalse(res.ok)
        self.assertTrue(res.errors[0].startswith("validation_error"))

    def test_period_totals_by_month(self) -> None:
        res = self._run("plans.period_totals", self._june(group_by="month"))

        self.assertTrue(res.ok)
        june = res.result["totals"]["2024-06"]
        self.assertEqual(june["income"], 300000.0)
        self.assertEqual(june["expense"], 89000.0)
        self.assertEqual(june["entry_count"], 7)

        bad = self._run("plans.period_totals", self._june(group_by="year"))
        self.assertFalse(bad.ok)

    def test_daily_balance_points_cover_window(self) -> None:
        res = self._run("plans.daily_balance", self._june(opening_balance=100000, only_incomplete=True))

        points = res.result["points"]
        self.assertEqual(len(points), 30)
        self.assertEqual(points[0]["balance"], 20000.0)
        self.assertEqual(points[-1]["balance"], 316000.0)

    def test_category_breakdown_against_zero_balance(self) -> None:
        res = self._run("plans.category_breakdown", self._june(type="expense", total=0))

        self.assertTrue(res.ok)
        self.assertEqual(res.result["categories"][0]["category"], "housing")
        self.assertTrue(all(c["percentage"] == 0.0 for c in res.result["categories"]))

        relative = self._run("plans.category_breakdown", self._june(type="expense"))
        shares = {c["category"]: c["percentage"] for c in relative.result["categories"]}
        self.assertAlmostEqual(shares["housing"] + shares["food"], 100.0, places=1)

    def test_upcoming_lists_next_days_and_overdue(self) -> None:
        res = self._run("plans.upcoming", {"today": "2024-06-02", "days": 7})

        self.assertTrue(res.ok)
        self.assertEqual([e["start"] for e in res.result["entries"]], ["2024-06-02", "2024-06-03"])
        self.assertEqual({p["title"] for p in res.result["overdue"]}, {"Rent"})

    def test_calendar_files_spans_from_earlier_months_under_window_start(self) -> None:
        PlanStore(self.backend, "u_123").create(
            {"title": "Trip", "amount": 20000, "type": "expense", "category": "travel", "startDate": "2024-05-25", "endDate": "2024-06-05"}
        )

        res = self._run("plans.calendar", self._june())

        trip = [e["id"] for e in res.result["entries"] if e["title"].startswith("Trip")]
        self.assertEqual(len(trip), 1)
        self.assertNotIn("2024-05-25", res.result["by_date"])
        self.assertIn(trip[0], res.result["by_date"]["2024-06-01"])

        totals = self._run("plans.period_totals", self._june(group_by="day"))
        self.assertEqual(totals.result["totals"]["2024-06-01"]["expense"], 100000.0)

    def test_only_incomplete_flag_accepts_json_strings(self) -> None:
        everything = self._run("plans.period_totals", self._june(group_by="month", only_incomplete="false"))
        pending = self._run("plans.period_totals", self._june(group_by="month", only_incomplete="true"))

        self.assertEqual(everything.result["totals"]["2024-06"]["expense"], 89000.0)
        self.assertEqual(pending.result["totals"]["2024-06"]["expense"], 84000.0)

        bad = self._run("plans.daily_balance", self._june(only_incomplete="maybe"))
        self.assertFalse(bad.ok)
        self.assertTrue(bad.errors[0].startswith("validation_error"))

    def test_invalid_window_is_reported_not_raised(self) -> None:
        res = self._run("plans.calendar", {"date_range": {"start": "2024-06-30", "end": "2024-06-01"}})
        self.assertFalse(res.ok)
        self.assertTrue(res.errors[0].startswith("invalid_range"))

    def test_unknown_report(self) -> None:
        res = self._run("plans.nope")
        self.assertFalse(res.ok)
        self.assertIn("plans.nope", res.errors[0])

    def test_storage_failure_is_reported(self) -> None:
        with patch.object(self.backend, "list", side_effect=StorageUnavailableError("offline")):
            res = self._run("plans.calendar", self._june())
        self.assertFalse(res.ok)
        self.assertIn("storage_unavailable", res.errors[0])


if __name__ == "__main__":
    unittest.main()
