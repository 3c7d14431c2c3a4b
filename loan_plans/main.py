"""Command‑line interface for loan plans.

This module uses the ``click`` library to implement a multi‑command
interface. Users can preview a schedule without saving anything, manage
stored plans (create, list, show, update, delete), export a plan as a
spreadsheet and start the HTTP API.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .config import Settings
from .data_models import PLAN_FIELDS, Schedule
from .engine import compute_schedule
from .exceptions import PlanError
from .formatter import print_plan, print_plan_list, print_schedule
from .log_setup import setup_logging
from .report import export_filename, render_workbook
from .storage import create_storage
from .store import PlanStore
from .utils import parse_amount, parse_percent


def _amount(ctx, param, value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return parse_amount(value)
    except PlanError as exc:
        raise click.BadParameter(exc.message)


def _rate(ctx, param, value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return parse_percent(value)
    except PlanError as exc:
        raise click.BadParameter(exc.message)


def parse_assignments(values: Tuple[str, ...]) -> Dict[str, Any]:
    """Turn ``key=value`` strings into a patch dictionary.

    Amounts and rates go through the same parsers as the ``create`` options,
    so ``monto=1.5M`` and ``tasaMensual=8%`` both work.
    """
    patch: Dict[str, Any] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep:
            raise click.BadParameter(f"Expected KEY=VALUE; got {item}")
        if key not in PLAN_FIELDS:
            raise click.BadParameter(f"Unknown field {key}; choose from {', '.join(PLAN_FIELDS)}")
        try:
            if key == "monto":
                patch[key] = parse_amount(raw)
            elif key in ("tasaMensual", "gastoAdmin"):
                patch[key] = parse_percent(raw, key)
            else:
                patch[key] = raw
        except PlanError as exc:
            raise click.BadParameter(exc.message)
    return patch


def export_to_json(path: Path, schedule: Schedule) -> None:
    """Export a schedule to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(schedule.to_dict(), f, indent=2)


def export_to_csv(path: Path, schedule: Schedule) -> None:
    """Export schedule rows to a CSV file."""
    header = ["Cuota", "FechaISO", "Saldo", "Capital", "Interes", "Total"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in schedule.rows:
            writer.writerow([row.cuota, row.fecha_iso, row.saldo, row.capital, row.interes, row.total])


def _store(ctx: click.Context) -> PlanStore:
    return ctx.obj["store"]


@click.group()
@click.option("--storage", "storage", envvar="LOAN_PLANS_STORAGE", help="JSON file path or SQLAlchemy URL")
@click.option("--log-level", "log_level", default=None, help="Log level (DEBUG, INFO, ...)")
@click.pass_context
def cli(ctx: click.Context, storage: Optional[str], log_level: Optional[str]) -> None:
    """Manage loan payment plans and their amortization schedules."""
    settings = Settings.from_env()
    if storage:
        settings.storage = storage
    if log_level:
        settings.log_level = log_level
    setup_logging(settings.log_level, settings.log_format)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["store"] = PlanStore(create_storage(settings.storage))


@cli.command()
@click.option("--monto", "-m", "monto", required=True, callback=_amount, help="Loan amount (500000, 500k, 1.5M)")
@click.option("--tasa", "-r", "tasa", default="0.08", callback=_rate, help="Monthly rate (0.08, 8 or 8%)")
@click.option("--cuotas", "-n", "cuotas", default=24, type=int, help="Number of installments")
@click.option("--primera-cuota", "-s", "primera_cuota", required=True, help="First installment date (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(monto: float, tasa: float, cuotas: int, primera_cuota: str, output: Optional[str]) -> None:
    """Compute and print a schedule without saving a plan."""
    try:
        result = compute_schedule(monto, cuotas, tasa, primera_cuota)
    except PlanError as exc:
        raise click.ClickException(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_schedule(result)


@cli.command()
@click.option("--nombre", required=True, help="Borrower name")
@click.option("--dni", required=True, help="Borrower identity document")
@click.option("--monto", "-m", "monto", required=True, callback=_amount, help="Loan amount (500000, 500k, 1.5M)")
@click.option("--fecha-desembolso", "fecha_desembolso", required=True, help="Disbursement date (YYYY-MM-DD)")
@click.option("--primera-cuota", "-s", "primera_cuota", required=True, help="First installment date (YYYY-MM-DD)")
@click.option("--tasa", "-r", "tasa", callback=_rate, help="Monthly rate (0.08, 8 or 8%)")
@click.option("--gasto-admin", "gasto_admin", callback=_rate, help="Administrative fee rate")
@click.option("--cuotas", "-n", "cuotas", type=int, help="Number of installments")
@click.option("--forma-pago", "forma_pago", help="Payment method")
@click.option("--plan-numero", "plan_numero", help="Plan number (defaults to the next free one)")
@click.option("--gestion", help="Gestión label")
@click.pass_context
def create(ctx: click.Context, nombre, dni, monto, fecha_desembolso, primera_cuota, tasa, gasto_admin, cuotas,
           forma_pago, plan_numero, gestion) -> None:
    """Create and store a new plan."""
    store = _store(ctx)
    terms = {
        "nombre": nombre,
        "dni": dni,
        "monto": monto,
        "fechaDesembolso": fecha_desembolso,
        "primeraCuotaFecha": primera_cuota,
        "tasaMensual": tasa,
        "gastoAdmin": gasto_admin,
        "cuotas": cuotas,
        "formaPago": forma_pago,
        "planNumero": plan_numero or str(store.suggest_plan_numero()),
        "gestion": gestion.upper() if gestion else None,
    }
    try:
        plan = store.create_plan(terms)
    except PlanError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Created plan {plan.id}")
    print_plan(plan)


@cli.command(name="list")
@click.option("--search", "-q", "search", help="Filter by name, DNI, plan number or gestión")
@click.pass_context
def list_command(ctx: click.Context, search: Optional[str]) -> None:
    """List stored plans."""
    print_plan_list(_store(ctx).list_plans(search))


@cli.command()
@click.argument("plan_id")
@click.pass_context
def show(ctx: click.Context, plan_id: str) -> None:
    """Print a stored plan and its schedule."""
    try:
        plan = _store(ctx).get_plan(plan_id)
    except PlanError as exc:
        raise click.ClickException(str(exc))
    print_plan(plan)
    if plan.schedule is not None:
        print_schedule(plan.schedule)


@cli.command()
@click.argument("plan_id")
@click.option("--set", "assignments", multiple=True, required=True, help="Field change in KEY=VALUE form")
@click.pass_context
def update(ctx: click.Context, plan_id: str, assignments: Tuple[str, ...]) -> None:
    """Change fields of a stored plan, e.g. --set cuotas=12 --set formaPago=Transferencia."""
    patch = parse_assignments(assignments)
    try:
        plan = _store(ctx).update_plan(plan_id, patch)
    except PlanError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Updated plan {plan.id}")
    print_plan(plan)


@cli.command()
@click.argument("plan_id")
@click.pass_context
def delete(ctx: click.Context, plan_id: str) -> None:
    """Delete a stored plan (no error if it does not exist)."""
    _store(ctx).delete_plan(plan_id)
    click.echo(f"Deleted plan {plan_id}")


@cli.command()
@click.argument("plan_id")
@click.option("--output", "-o", "output", type=click.Path(dir_okay=False), help="Target .xlsx file")
@click.pass_context
def export(ctx: click.Context, plan_id: str, output: Optional[str]) -> None:
    """Export a stored plan as a printable spreadsheet."""
    try:
        plan = _store(ctx).get_plan(plan_id)
    except PlanError as exc:
        raise click.ClickException(str(exc))
    path = Path(output or export_filename(plan))
    path.write_bytes(render_workbook(plan))
    click.echo(f"Plan exported to {path}")


@cli.command()
@click.option("--host", default=None, help="Interface to bind")
@click.option("--port", default=None, type=int, help="Port to listen on")
@click.option("--debug", is_flag=True, help="Run Flask in debug mode")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], debug: bool) -> None:
    """Start the HTTP API."""
    from loan_plans_web.app import create_app

    settings: Settings = ctx.obj["settings"]
    app = create_app(store=_store(ctx), settings=settings)
    click.echo(f"API ready on http://localhost:{port or settings.port}")
    app.run(host=host or settings.host, port=port or settings.port, debug=debug)


if __name__ == "__main__":
    cli()
