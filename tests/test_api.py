from __future__ import annotations

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from domain.errors import StorageUnavailableError
from infrastructure.plan_backends.memory import InMemoryPlanBackend
from interface.api import create_app

SCOPE = {"X-Plan-Scope": "u_123"}


class PlanApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = InMemoryPlanBackend()
        self.client = TestClient(create_app(self.backend))

    def _create(self, **fields) -> dict:
        body = {"title": "Salary", "amount": 1000, "type": "income", "category": "salary", "startDate": "2024-06-10"}
        body.update(fields)
        res = self.client.post("/plans", json=body, headers=SCOPE)
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_create_get_update_toggle_delete(self) -> None:
        plan = self._create()
        self.assertEqual(plan["startDate"], "2024-06-10")
        self.assertFalse(plan["completed"])

        self.assertEqual(self.client.get(f"/plans/{plan['id']}", headers=SCOPE).json()["title"], "Salary")

        updated = self.client.patch(f"/plans/{plan['id']}", json={"amount": 1200}, headers=SCOPE)
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["amount"], 1200.0)

        toggled = self.client.post(f"/plans/{plan['id']}/toggle", headers=SCOPE)
        self.assertTrue(toggled.json()["completed"])

        self.assertEqual(self.client.delete(f"/plans/{plan['id']}", headers=SCOPE).json()["deleted"], True)
        self.assertEqual(self.client.delete(f"/plans/{plan['id']}", headers=SCOPE).json()["deleted"], False)
        self.assertEqual(self.client.get("/plans", headers=SCOPE).json(), {"plans": []})

    def test_scope_header_isolates_sessions(self) -> None:
        self._create()
        self.assertEqual(self.client.get("/plans", headers={"X-Plan-Scope": "other"}).json(), {"plans": []})
        self.assertEqual(len(self.client.get("/plans", headers=SCOPE).json()["plans"]), 1)

    def test_error_kinds_map_to_status_codes(self) -> None:
        bad = self.client.post(
            "/plans",
            json={"title": "x", "amount": 0, "type": "expense", "category": "c", "startDate": "2024-06-01"},
            headers=SCOPE,
        )
        self.assertEqual(bad.status_code, 422)
        self.assertEqual(bad.json()["error"], "validation_error")
        self.assertEqual(bad.json()["field"], "amount")

        missing = self.client.patch("/plans/nope", json={"title": "y"}, headers=SCOPE)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"], "not_found")

        reversed_range = self.client.get("/calendar", params={"start": "2024-06-30", "end": "2024-06-01"}, headers=SCOPE)
        self.assertEqual(reversed_range.status_code, 400)
        self.assertEqual(reversed_range.json()["error"], "invalid_range")

        with patch.object(self.backend, "list", side_effect=StorageUnavailableError("offline")):
            down = self.client.get("/plans", headers=SCOPE)
        self.assertEqual(down.status_code, 503)
        self.assertEqual(down.json()["error"], "storage_unavailable")

    def test_calendar_expands_recurring_plans(self) -> None:
        self._create(title="Allowance", startDate="2024-01-05", isRecurring=True, recurringType="monthly")

        res = self.client.get("/calendar", params={"start": "2024-01-01", "end": "2024-03-31"}, headers=SCOPE)

        entries = res.json()["entries"]
        self.assertEqual([e["start"] for e in entries], ["2024-01-05", "2024-02-05", "2024-03-05"])
        self.assertTrue(all(e["allDay"] for e in entries))
        self.assertEqual(entries[0]["title"], "Allowance (+¥1,000)")

    def test_summary_is_cached_until_plans_change(self) -> None:
        params = {"start": "2024-06-01", "end": "2024-06-30", "current_balance": "5000"}
        self.assertEqual(
            self.client.get("/summary", params=params, headers=SCOPE).json(),
            {"plannedIncome": 0.0, "plannedExpense": 0.0, "projectedBalance": 5000.0},
        )

        plan = self._create()
        self.assertEqual(self.client.get("/summary", params=params, headers=SCOPE).json()["projectedBalance"], 6000.0)

        self.client.post(f"/plans/{plan['id']}/toggle", headers=SCOPE)
        self.assertEqual(self.client.get("/summary", params=params, headers=SCOPE).json()["projectedBalance"], 5000.0)

    def test_reports_endpoints(self) -> None:
        self._create()
        names = {r["name"] for r in self.client.get("/reports").json()["reports"]}
        self.assertIn("plans.summary", names)

        res = self.client.post(
            "/reports/plans.summary",
            json={"request_id": "req_1", "args": {"start": "2024-06-01", "end": "2024-06-30", "current_balance": 100}},
            headers=SCOPE,
        )
        body = res.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["result"]["projectedBalance"], 1100.0)
        self.assertEqual(body["context"]["scope_key"], "u_123")


if __name__ == "__main__":
    unittest.main()
