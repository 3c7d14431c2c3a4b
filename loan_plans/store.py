"""Plan store: create, read, list, update and delete loan plans.

The store is the only writer of a plan's schedule. It validates and
normalizes incoming terms, asks the engine for a schedule and persists the
merged record through a ``SnapshotStorage`` backend.

Every operation is an independent read-modify-write of the whole snapshot.
There is no locking between operations: if two writers run at the same time,
the snapshot written last wins and silently drops the other writer's changes,
even to unrelated plans. Callers that need concurrent writes must serialize
them themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional
from uuid import uuid4

from .data_models import (
    DEFAULT_CUOTAS,
    DEFAULT_FORMA_PAGO,
    DEFAULT_GASTO_ADMIN,
    DEFAULT_TASA_MENSUAL,
    PLAN_FIELDS,
    Plan,
)
from .engine import compute_schedule
from .exceptions import InvalidAmount, MissingRequiredField, NotFound
from .storage import COLLECTION_KEY, SnapshotStorage
from .utils import format_iso, parse_iso_date, to_decimal, to_installment_count, to_money_int, to_rate

logger = logging.getLogger(__name__)

REQUIRED_ON_CREATE = ("nombre", "dni", "fechaDesembolso", "primeraCuotaFecha")

DEFAULTS: Dict[str, Any] = {
    "tasaMensual": DEFAULT_TASA_MENSUAL,
    "gastoAdmin": DEFAULT_GASTO_ADMIN,
    "cuotas": DEFAULT_CUOTAS,
    "formaPago": DEFAULT_FORMA_PAGO,
}

SEARCH_FIELDS = ("nombre", "dni", "planNumero", "gestion")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _normalize(key: str, value: Any) -> Any:
    """Coerce a single incoming field value to its stored representation."""
    if key == "monto":
        return to_money_int(value, key)
    if key == "cuotas":
        return to_installment_count(value, key)
    if key in ("tasaMensual", "gastoAdmin"):
        return to_rate(value, key)
    if key in ("fechaDesembolso", "primeraCuotaFecha"):
        return None if _is_blank(value) else format_iso(parse_iso_date(value, key))
    # free-text fields are stored as strings even when sent as numbers
    return str(value).strip()


def _with_schedule(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``record`` with a freshly computed schedule attached."""
    if _is_blank(record.get("primeraCuotaFecha")):
        raise MissingRequiredField("primeraCuotaFecha")
    schedule = compute_schedule(
        principal=record["monto"],
        installment_count=record["cuotas"],
        monthly_rate=record["tasaMensual"],
        first_installment_date=record["primeraCuotaFecha"],
    )
    return {**record, "schedule": schedule.to_dict()}


class PlanStore:
    """Durable collection of loan plans backed by snapshot storage."""

    def __init__(self, storage: SnapshotStorage, id_factory: Optional[Callable[[], str]] = None) -> None:
        self.storage = storage
        self._id_factory = id_factory or (lambda: uuid4().hex)

    def _plans(self) -> Dict[str, Dict[str, Any]]:
        return self.storage.read_collection()[COLLECTION_KEY]

    def _save(self, plans: Dict[str, Dict[str, Any]]) -> None:
        self.storage.write_collection({COLLECTION_KEY: plans})

    def create_plan(self, terms: Mapping[str, Any]) -> Plan:
        """Validate ``terms``, compute the schedule and persist a new plan.

        Raises ``MissingRequiredField``, ``InvalidAmount`` or ``InvalidTerms``;
        nothing is written when any of them is raised.
        """
        for key in REQUIRED_ON_CREATE:
            if _is_blank(terms.get(key)):
                raise MissingRequiredField(key)

        record: Dict[str, Any] = {}
        for key in PLAN_FIELDS:
            value = terms.get(key)
            if value is None:
                value = DEFAULTS.get(key)
            record[key] = value if value is None else _normalize(key, value)
        if record["monto"] is None:
            raise InvalidAmount(None)

        record = _with_schedule(record)

        plans = self._plans()
        plan_id = self._id_factory()
        while plan_id in plans:
            plan_id = self._id_factory()
        record = {"id": plan_id, **record}
        plans[plan_id] = record
        self._save(plans)
        logger.info("Created plan %s for %s (%d cuotas)", plan_id, record["nombre"], record["cuotas"])
        return Plan.from_dict(record)

    def get_plan(self, plan_id: str) -> Plan:
        record = self._plans().get(plan_id)
        if record is None:
            raise NotFound(plan_id)
        return Plan.from_dict(record)

    def list_plans(self, search: Optional[str] = None) -> List[Plan]:
        """Return all plans in creation order, optionally filtered.

        ``search`` is matched case-insensitively as a substring of the
        borrower name, DNI, plan number or gestión label.
        """
        records = list(self._plans().values())
        term = (search or "").strip().casefold()
        if term:
            records = [
                r for r in records
                if any(term in str(r.get(key) or "").casefold() for key in SEARCH_FIELDS)
            ]
        return [Plan.from_dict(r) for r in records]

    def update_plan(self, plan_id: str, patch: Mapping[str, Any]) -> Plan:
        """Merge ``patch`` onto a stored plan.

        If the patch touches any field flagged ``recompute`` in
        ``PLAN_FIELDS`` the whole schedule is rebuilt from the merged terms;
        otherwise the stored schedule is kept as is.
        """
        plans = self._plans()
        existing = plans.get(plan_id)
        if existing is None:
            raise NotFound(plan_id)

        changes: Dict[str, Any] = {}
        for key, value in patch.items():
            spec = PLAN_FIELDS.get(key)
            if spec is None:
                logger.debug("Ignoring non-patchable field %r on plan %s", key, plan_id)
                continue
            if spec.required and _is_blank(value):
                raise MissingRequiredField(key)
            changes[key] = value if value is None else _normalize(key, value)

        updated = {**existing, **changes}
        recompute = any(PLAN_FIELDS[key].recompute for key in changes)
        if recompute:
            updated = _with_schedule(updated)

        plans[plan_id] = updated
        self._save(plans)
        logger.info("Updated plan %s (fields: %s, schedule recomputed: %s)",
                    plan_id, ", ".join(sorted(changes)) or "none", recompute)
        return Plan.from_dict(updated)

    def delete_plan(self, plan_id: str) -> None:
        """Remove a plan; unknown ids are ignored."""
        plans = self._plans()
        if plans.pop(plan_id, None) is None:
            return
        self._save(plans)
        logger.info("Deleted plan %s", plan_id)

    def suggest_plan_numero(self) -> int:
        """Next plan number: one more than the highest numeric ``planNumero``."""
        highest = 0
        for record in self._plans().values():
            try:
                numero = to_decimal(record.get("planNumero"))
            except ValueError:
                continue
            if numero == numero.to_integral_value():
                highest = max(highest, int(numero))
        return highest + 1
