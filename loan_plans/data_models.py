"""Data models for loan plans.

This module defines dataclasses for a single installment row, a whole
amortization schedule and the persisted plan record. Each model converts to
and from the camelCase dictionaries used on the wire and in the snapshot
file. It also holds ``PLAN_FIELDS``, the table of patchable plan fields that
tells the store which edits require the schedule to be recomputed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ScheduleRow:
    """One installment of an amortization schedule.

    Attributes
    ----------
    cuota: int
        1-based installment index.
    fecha: str
        Due date for display (``DD-MM-YY``).
    fecha_iso: str
        Due date in canonical ``YYYY-MM-DD`` form.
    saldo: int
        Outstanding principal *before* this installment is applied.
    capital: int
        Principal portion of the installment.
    interes: int
        Interest portion, computed on ``saldo``.
    total: int
        ``capital + interes``.
    """

    cuota: int
    fecha: str
    fecha_iso: str
    saldo: int
    capital: int
    interes: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cuota": self.cuota,
            "fechaISO": self.fecha_iso,
            "fecha": self.fecha,
            "saldo": self.saldo,
            "capital": self.capital,
            "interes": self.interes,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleRow":
        return cls(
            cuota=int(data["cuota"]),
            fecha=data["fecha"],
            fecha_iso=data["fechaISO"],
            saldo=int(data["saldo"]),
            capital=int(data["capital"]),
            interes=int(data["interes"]),
            total=int(data["total"]),
        )


@dataclass(frozen=True)
class Schedule:
    """A full amortization schedule and its column totals.

    Schedules are only ever produced by the engine and replaced as a whole;
    the totals always equal the sums of the rows.
    """

    rows: List[ScheduleRow]
    sum_capital: int
    sum_interes: int
    sum_total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "sumCapital": self.sum_capital,
            "sumInteres": self.sum_interes,
            "sumTotal": self.sum_total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schedule":
        return cls(
            rows=[ScheduleRow.from_dict(row) for row in data.get("rows", [])],
            sum_capital=int(data["sumCapital"]),
            sum_interes=int(data["sumInteres"]),
            sum_total=int(data["sumTotal"]),
        )


@dataclass(frozen=True)
class FieldSpec:
    """Metadata for a patchable plan field."""

    key: str  # wire / snapshot key
    attr: str  # Plan attribute
    recompute: bool = False  # editing it invalidates the schedule
    required: bool = False  # must stay present and non-empty


PLAN_FIELDS: Dict[str, FieldSpec] = {
    spec.key: spec
    for spec in (
        FieldSpec("planNumero", "plan_numero"),
        FieldSpec("gestion", "gestion"),
        FieldSpec("nombre", "nombre", required=True),
        FieldSpec("dni", "dni", required=True),
        FieldSpec("monto", "monto", recompute=True),
        FieldSpec("tasaMensual", "tasa_mensual", recompute=True),
        FieldSpec("gastoAdmin", "gasto_admin"),
        FieldSpec("cuotas", "cuotas", recompute=True),
        FieldSpec("formaPago", "forma_pago"),
        FieldSpec("fechaDesembolso", "fecha_desembolso", required=True),
        FieldSpec("primeraCuotaFecha", "primera_cuota_fecha", recompute=True),
    )
}

DEFAULT_TASA_MENSUAL = 0.08
DEFAULT_GASTO_ADMIN = 0.005
DEFAULT_CUOTAS = 24
DEFAULT_FORMA_PAGO = "Efectivo"


@dataclass
class Plan:
    """A persisted loan plan.

    Dates are kept as ``YYYY-MM-DD`` strings, which is also how they travel
    on the wire. ``gasto_admin`` is stored for the printed report only and is
    not used by the schedule calculation.
    """

    id: str
    nombre: str
    dni: str
    monto: int
    fecha_desembolso: str
    primera_cuota_fecha: Optional[str]
    plan_numero: Any = None
    gestion: Any = None
    tasa_mensual: float = DEFAULT_TASA_MENSUAL
    gasto_admin: float = DEFAULT_GASTO_ADMIN
    cuotas: int = DEFAULT_CUOTAS
    forma_pago: str = DEFAULT_FORMA_PAGO
    schedule: Optional[Schedule] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        for spec in PLAN_FIELDS.values():
            data[spec.key] = getattr(self, spec.attr)
        data["schedule"] = self.schedule.to_dict() if self.schedule is not None else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        kwargs = {spec.attr: data.get(spec.key) for spec in PLAN_FIELDS.values()}
        schedule = data.get("schedule")
        return cls(
            id=data["id"],
            schedule=Schedule.from_dict(schedule) if schedule else None,
            **kwargs,
        )
