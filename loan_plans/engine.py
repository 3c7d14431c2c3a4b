"""Core calculation engine for loan plans.

This module builds flat-rate-on-declining-balance amortization schedules:
the principal is split into equal whole-unit shares and each installment
pays interest on the balance outstanding before it. Results are returned as
a ``Schedule`` of ``ScheduleRow`` objects plus column totals.

The engine performs no I/O and never looks at the current date, so it is safe
to call from any number of threads.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List, Union

from .data_models import Schedule, ScheduleRow
from .exceptions import InvalidTerms
from .utils import (
    add_months,
    format_display,
    format_iso,
    parse_iso_date,
    round_half_up,
    to_installment_count,
    to_money_int,
    to_rate,
)


def _split_principal(principal: int, count: int) -> List[int]:
    """Split ``principal`` into ``count`` whole-unit capital shares.

    Every share is ``principal // count`` and the remainder lands on the last
    installment, so the shares always add back up to ``principal`` exactly.
    """
    base = principal // count
    remainder = principal - base * count
    shares = [base] * count
    shares[-1] += remainder
    return shares


def _interest(balance: int, rate: Decimal) -> int:
    return round_half_up(Decimal(balance) * rate)


def compute_schedule(
    principal: Any,
    installment_count: Any,
    monthly_rate: Any,
    first_installment_date: Union[date, str],
) -> Schedule:
    """Compute the amortization schedule for a loan.

    Parameters
    ----------
    principal:
        Loan amount. Any finite number; rounded half up to whole units.
    installment_count:
        Number of monthly installments, a positive integer.
    monthly_rate:
        Monthly interest rate as a decimal fraction (0.08 means 8 %).
    first_installment_date:
        Due date of the first installment, a ``date`` or ``YYYY-MM-DD``.

    Returns
    -------
    Schedule
        One row per installment plus column totals.

    Raises
    ------
    InvalidAmount
        If ``principal`` is not a finite number.
    InvalidTerms
        If the count, rate or date is invalid; ``field`` names which.
    """
    amount = to_money_int(principal, "monto")
    count = to_installment_count(installment_count, "cuotas")
    rate = Decimal(str(to_rate(monthly_rate, "tasaMensual")))
    first_date = parse_iso_date(first_installment_date, "primeraCuotaFecha")

    try:
        due_dates = [add_months(first_date, offset) for offset in range(count)]
    except (ValueError, OverflowError) as exc:
        raise InvalidTerms("primeraCuotaFecha", "schedule runs past year 9999", first_installment_date) from exc

    rows: List[ScheduleRow] = []
    balance = amount
    for cuota, capital in enumerate(_split_principal(amount, count), start=1):
        due = due_dates[cuota - 1]
        # interest is charged on the balance before this installment's capital
        interes = _interest(balance, rate)
        rows.append(
            ScheduleRow(
                cuota=cuota,
                fecha=format_display(due),
                fecha_iso=format_iso(due),
                saldo=balance,
                capital=capital,
                interes=interes,
                total=capital + interes,
            )
        )
        balance -= capital

    return Schedule(
        rows=rows,
        sum_capital=sum(row.capital for row in rows),
        sum_interes=sum(row.interes for row in rows),
        sum_total=sum(row.total for row in rows),
    )
