from __future__ import annotations

import copy
from typing import Any

from infrastructure.plan_backends.backend import PlanBackend


class InMemoryPlanBackend(PlanBackend):
    name = "memory"

    def __init__(self):
        self._store: dict[str, list[dict[str, Any]]] = {}

    def list(self, scope_key: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._store.get(scope_key, []))

    def put(self, scope_key: str, records: list[dict[str, Any]]) -> None:
        self._store[scope_key] = copy.deepcopy(records)

    def scopes(self) -> list[str]:
        return sorted(self._store.keys())
