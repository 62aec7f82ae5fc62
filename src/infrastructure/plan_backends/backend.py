from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class PlanBackend(ABC):
    """Record-oriented persistence collaborator, keyed by an opaque per-session scope."""

    name: str = "backend"

    @abstractmethod
    def list(self, scope_key: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def put(self, scope_key: str, records: list[dict[str, Any]]) -> None:
        """Replace every record held for `scope_key`; returns once the write is acknowledged."""
        raise NotImplementedError
