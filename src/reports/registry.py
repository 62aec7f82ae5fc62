from __future__ import annotations

import logging

from reports.base import Report, ReportSpec

logger = logging.getLogger(__name__)


class ReportRegistry:
    """Named read-side reports over a scope's plans. Names are unique; specs list in name order."""

    def __init__(self):
        self._reports: dict[str, Report] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._reports

    def register(self, report: Report) -> Report:
        name = (getattr(report, "name", "") or "").strip()
        if not name:
            raise ValueError(f"{type(report).__name__} has no report name")
        existing = self._reports.get(name)
        if existing is not None and existing is not report:
            raise ValueError(f"Report {name!r} is already registered by {type(existing).__name__}")
        self._reports[name] = report
        logger.debug("ReportRegistry registered report=%s", name)
        return report

    def get_report(self, name: str) -> Report:
        try:
            return self._reports[name]
        except KeyError:
            known = ", ".join(sorted(self._reports)) or "none"
            raise KeyError(f"Report not registered: {name} (known: {known})") from None

    def list_specs(self) -> list[ReportSpec]:
        return [self._reports[name].spec() for name in sorted(self._reports)]


registry = ReportRegistry()


def register_report(report_cls: type[Report]) -> type[Report]:
    """Class decorator: instantiate the report once and add it to the shared registry."""
    registry.register(report_cls())
    return report_cls
