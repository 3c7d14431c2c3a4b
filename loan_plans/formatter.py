"""Output helpers for loan plans.

This module provides simple functions to render plans and amortization
schedules in a tabular text format for the command line.
"""

from __future__ import annotations

from typing import Iterable

import click

from .data_models import Plan, Schedule


def _money(value: int) -> str:
    return f"{value:,}"


def print_plan(plan: Plan) -> None:
    """Print a plan's borrower details and loan terms."""
    click.echo(f"Plan {plan.id}")
    click.echo("-" * 72)
    click.echo(f"Plan N°            : {plan.plan_numero if plan.plan_numero is not None else '-'}")
    click.echo(f"Gestión            : {plan.gestion if plan.gestion is not None else '-'}")
    click.echo(f"Nombre             : {plan.nombre}")
    click.echo(f"DNI                : {plan.dni}")
    click.echo(f"Fecha desembolso   : {plan.fecha_desembolso}")
    click.echo(f"Primera cuota      : {plan.primera_cuota_fecha}")
    click.echo(f"Monto              : {_money(plan.monto)}")
    click.echo(f"Interés mensual    : {plan.tasa_mensual * 100:.2f}%")
    click.echo(f"Gastos admin.      : {(plan.gasto_admin or 0) * 100:.2f}%")
    click.echo(f"Cuotas             : {plan.cuotas}")
    click.echo(f"Forma de pago      : {plan.forma_pago}")
    click.echo("-" * 72)


def print_schedule(schedule: Schedule) -> None:
    """Print the amortization schedule as a simple table with a totals line."""
    headers = ["Cuota", "Fecha", "Saldo", "Capital", "Interes", "Total"]
    click.echo("\t".join(headers))
    for row in schedule.rows:
        click.echo(
            "\t".join(
                [
                    str(row.cuota),
                    row.fecha,
                    _money(row.saldo),
                    _money(row.capital),
                    _money(row.interes),
                    _money(row.total),
                ]
            )
        )
    click.echo(
        "\t".join(
            ["TOTAL", "", "", _money(schedule.sum_capital), _money(schedule.sum_interes), _money(schedule.sum_total)]
        )
    )


def print_plan_list(plans: Iterable[Plan]) -> None:
    """Print one line per plan with its totals."""
    headers = f"{'ID':34s} {'N°':>5s} {'Nombre':24s} {'DNI':12s} {'Monto':>12s} {'Total':>12s}"
    click.echo(headers)
    click.echo("=" * len(headers))
    count = 0
    amount = 0
    for plan in plans:
        total = plan.schedule.sum_total if plan.schedule else 0
        numero = "" if plan.plan_numero is None else str(plan.plan_numero)
        click.echo(
            f"{plan.id:34s} {numero:>5s} {str(plan.nombre)[:24]:24s} {str(plan.dni)[:12]:12s} "
            f"{_money(plan.monto):>12s} {_money(total):>12s}"
        )
        count += 1
        amount += plan.monto
    click.echo("=" * len(headers))
    click.echo(f"{count} plans, {_money(amount)} lent")
