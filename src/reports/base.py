from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from domain.schemas import ReportRequest, ReportResponse

if TYPE_CHECKING:
    from application.planning_service import PlanningService


@dataclass(frozen=True)
class ReportSpec:
    name: str
    description: str
    args_schema: dict[str, Any]


class Report(ABC):
    name: str
    description: str = ""

    @abstractmethod
    def run(self, request: ReportRequest, service: "PlanningService") -> ReportResponse:
        raise NotImplementedError

    def spec(self) -> ReportSpec:
        return ReportSpec(name=self.name, description=self.description, args_schema={})

    def respond(self, request: ReportRequest, result: dict[str, Any]) -> ReportResponse:
        return ReportResponse(request_id=request.request_id, report=self.name, result=result, context=request.context)
