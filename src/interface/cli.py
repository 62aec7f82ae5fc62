from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import date
from typing import Any, Sequence

from application.plan_query import sort_entries
from application.plan_store import PlanStore
from application.planning_service import PlanningService
from application.report_executor import ReportExecutor
from domain.errors import PlanningError
from infrastructure.plan_backends import PlanBackend, build_backend
from infrastructure.persistence.view_cache import ViewCache
from reports._window_support import current_month_window
from reports.registry import registry


def build_service(
    backend: PlanBackend,
    scope_key: str,
    view_cache: ViewCache | None = None,
    currency_symbol: str | None = None,
) -> PlanningService:
    listeners = [view_cache.on_change] if view_cache is not None else []
    store = PlanStore(backend, scope_key, listeners=listeners)
    return PlanningService(store, currency_symbol=currency_symbol)


def build_executor(backend: PlanBackend, view_cache: ViewCache | None = None) -> ReportExecutor:
    import reports  # noqa: F401

    return ReportExecutor(registry, lambda scope_key: build_service(backend, scope_key, view_cache))


def _month_bounds(today: date) -> tuple[str, str]:
    window = current_month_window(today)
    return window.start.isoformat(), window.end.isoformat()


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="planner", description="Financial plan calendar")
    parser.add_argument("--scope", default=os.getenv("PLAN_DEFAULT_SCOPE", "default"))
    parser.add_argument("--backend", default=None, help="memory | file | remote (defaults to PLAN_BACKEND, else file)")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Create a plan")
    add.add_argument("title")
    add.add_argument("amount")
    add.add_argument("--type", choices=["income", "expense"], default="expense")
    add.add_argument("--category", default="other")
    add.add_argument("--start", required=True)
    add.add_argument("--end")
    add.add_argument("--repeat", choices=["daily", "weekly", "monthly", "yearly"])
    add.add_argument("--account")
    add.add_argument("--description")
    add.add_argument("--color")

    sub.add_parser("list", help="List every plan")

    for name in ("calendar", "summary"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--start")
        cmd.add_argument("--end")
        if name == "summary":
            cmd.add_argument("--balance", default="0")

    complete = sub.add_parser("complete", help="Toggle a plan's completed flag")
    complete.add_argument("plan_id")

    delete = sub.add_parser("delete", help="Delete a plan")
    delete.add_argument("plan_id")
    return parser


def run(argv: Sequence[str] | None = None, backend: PlanBackend | None = None) -> dict[str, Any]:
    args = _parser().parse_args(argv)
    service = build_service(backend or build_backend(args.backend or os.getenv("PLAN_BACKEND", "file")), args.scope)

    if args.command == "add":
        plan = service.create_plan(
            {
                "title": args.title,
                "amount": args.amount,
                "type": args.type,
                "category": args.category,
                "startDate": args.start,
                "endDate": args.end,
                "isRecurring": bool(args.repeat),
                "recurringType": args.repeat,
                "accountId": args.account,
                "description": args.description,
                "color": args.color,
            }
        )
        return plan.model_dump(mode="json", by_alias=True)
    if args.command == "list":
        return {"plans": [p.model_dump(mode="json", by_alias=True) for p in service.list_plans()]}
    if args.command in {"calendar", "summary"}:
        default_start, default_end = _month_bounds(date.today())
        start, end = args.start or default_start, args.end or default_end
        if args.command == "calendar":
            entries = sort_entries(service.query_plans(start, end))
            return {"entries": [e.model_dump(mode="json", by_alias=True) for e in entries]}
        return service.summarize(start, end, args.balance).model_dump(mode="json", by_alias=True)
    if args.command == "complete":
        return service.toggle_completed(args.plan_id).model_dump(mode="json", by_alias=True)
    return {"deleted": service.delete_plan(args.plan_id), "id": args.plan_id}


def main(argv: Sequence[str] | None = None) -> int:
    try:
        payload = run(argv)
    except PlanningError as exc:
        print(json.dumps(exc.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
