from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from domain.errors import PlanNotFoundError, PlanValidationError, StorageUnavailableError
from domain.models import ChangeKind, PlanChange
from domain.schemas import FinancialPlan, PlanFields, PlanUpdate, validation_error_from
from infrastructure.plan_backends.backend import PlanBackend

logger = logging.getLogger(__name__)

ChangeListener = Callable[[PlanChange], None]


class PlanStore:
    """
    Financial plans for a single scope (one user session).

    Reads are served from a copy loaded once from the backend; every write is
    pushed to the backend first and only then applied locally, so a failed
    write leaves the previous state untouched and a successful one is visible
    to the next read.
    """

    def __init__(
        self,
        backend: PlanBackend,
        scope_key: str,
        listeners: Iterable[ChangeListener] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._backend = backend
        self._scope_key = scope_key
        self._listeners: list[ChangeListener] = list(listeners or [])
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._plans: list[FinancialPlan] | None = None

    @property
    def scope_key(self) -> str:
        return self._scope_key

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    # ---- reads ----
    def get_all(self) -> list[FinancialPlan]:
        return list(self._load())

    def get(self, plan_id: str) -> FinancialPlan:
        for plan in self._load():
            if plan.id == plan_id:
                return plan
        raise PlanNotFoundError(plan_id)

    # ---- writes ----
    def create(self, plan_data: PlanFields | Mapping[str, Any]) -> FinancialPlan:
        fields = self._validate_fields(plan_data)
        plans = self._load()
        existing_ids = {p.id for p in plans}
        plan_id = self._id_factory()
        while plan_id in existing_ids:
            plan_id = self._id_factory()

        plan = FinancialPlan(id=plan_id, **fields.model_dump())
        self._commit(plans + [plan])
        logger.info("PlanStore created plan scope=%s id=%s type=%s", self._scope_key, plan.id, plan.type.value)
        self._notify(ChangeKind.CREATED, plan)
        return plan

    def update(self, plan_id: str, fields: PlanUpdate | Mapping[str, Any] | None = None) -> FinancialPlan:
        changes = self._validate_changes(fields)
        plans = self._load()
        index = self._index_of(plans, plan_id)

        merged = plans[index].model_dump()
        merged.update(changes)
        try:
            updated = FinancialPlan.model_validate(merged)
        except ValidationError as exc:
            raise validation_error_from(exc, FinancialPlan) from exc

        new_plans = list(plans)
        new_plans[index] = updated
        self._commit(new_plans)
        logger.info("PlanStore updated plan scope=%s id=%s fields=%s", self._scope_key, plan_id, sorted(changes))
        self._notify(ChangeKind.UPDATED, updated)
        return updated

    def toggle_completed(self, plan_id: str) -> FinancialPlan:
        current = self.get(plan_id)
        return self.update(plan_id, {"completed": not current.completed})

    def delete(self, plan_id: str) -> bool:
        plans = self._load()
        remaining = [p for p in plans if p.id != plan_id]
        if len(remaining) == len(plans):
            logger.info("PlanStore delete no-op scope=%s id=%s", self._scope_key, plan_id)
            return False

        removed = next(p for p in plans if p.id == plan_id)
        self._commit(remaining)
        logger.info("PlanStore deleted plan scope=%s id=%s", self._scope_key, plan_id)
        self._notify(ChangeKind.DELETED, removed)
        return True

    def refresh(self) -> None:
        """Drop the local copy so the next read goes back to the backend."""
        self._plans = None

    # ---- internals ----
    def _load(self) -> list[FinancialPlan]:
        if self._plans is not None:
            return self._plans

        rows = self._backend.list(self._scope_key)
        plans: list[FinancialPlan] = []
        for row in rows:
            try:
                plans.append(FinancialPlan.model_validate(row))
            except ValidationError as exc:
                raise StorageUnavailableError(
                    f"Backend {self._backend.name!r} returned an invalid plan record: {exc}"
                ) from exc
        logger.info("PlanStore loaded scope=%s backend=%s plans=%d", self._scope_key, self._backend.name, len(plans))
        self._plans = plans
        return plans

    def _commit(self, plans: list[FinancialPlan]) -> None:
        self._backend.put(self._scope_key, [p.to_record() for p in plans])
        self._plans = plans

    def _index_of(self, plans: list[FinancialPlan], plan_id: str) -> int:
        for index, plan in enumerate(plans):
            if plan.id == plan_id:
                return index
        raise PlanNotFoundError(plan_id)

    def _validate_fields(self, plan_data: PlanFields | Mapping[str, Any]) -> PlanFields:
        if isinstance(plan_data, PlanFields) and not isinstance(plan_data, FinancialPlan):
            return plan_data
        if isinstance(plan_data, FinancialPlan):
            raise PlanValidationError("id is assigned by the store and must not be supplied", field="id")
        try:
            return PlanFields.model_validate(dict(plan_data))
        except ValidationError as exc:
            raise validation_error_from(exc, PlanFields) from exc

    def _validate_changes(self, fields: PlanUpdate | Mapping[str, Any] | None) -> dict[str, Any]:
        if fields is None:
            return {}
        if isinstance(fields, PlanUpdate):
            return fields.changes()
        try:
            return PlanUpdate.model_validate(dict(fields)).changes()
        except ValidationError as exc:
            raise validation_error_from(exc, PlanUpdate) from exc

    def _notify(self, kind: ChangeKind, plan: FinancialPlan) -> None:
        change = PlanChange(kind=kind, scope_key=self._scope_key, plan=plan)
        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                # The write is already acknowledged; a broken listener must not undo it.
                logger.exception("PlanStore change listener failed kind=%s id=%s", kind.value, plan.id)
