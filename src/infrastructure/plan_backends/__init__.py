from __future__ import annotations

import os

from infrastructure.plan_backends.backend import PlanBackend
from infrastructure.plan_backends.json_file import JsonFilePlanBackend
from infrastructure.plan_backends.memory import InMemoryPlanBackend
from infrastructure.plan_backends.remote import RemoteDocumentPlanBackend

__all__ = [
    "PlanBackend",
    "InMemoryPlanBackend",
    "JsonFilePlanBackend",
    "RemoteDocumentPlanBackend",
    "build_backend",
]


def build_backend(kind: str | None = None) -> PlanBackend:
    kind = (kind or os.getenv("PLAN_BACKEND", "memory")).strip().lower()
    if kind == "memory":
        return InMemoryPlanBackend()
    if kind == "file":
        return JsonFilePlanBackend()
    if kind == "remote":
        return RemoteDocumentPlanBackend()
    raise ValueError(f"Unknown PLAN_BACKEND: {kind!r} (expected memory, file or remote)")
