"""Command-line interface tests"""
import json
import logging

import pytest
from click.testing import CliRunner

from loan_plans.main import cli
from loan_plans.storage import JsonFileStorage
from loan_plans.store import PlanStore


@pytest.fixture
def run(plans_path, monkeypatch):
    # leave pytest's log capture handlers on the root logger
    monkeypatch.setattr("loan_plans.main.setup_logging", lambda *args, **kwargs: None)
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--storage", str(plans_path), *args], catch_exceptions=False)

    return _run


def _create(run):
    return run(
        "create", "--nombre", "Ana Pérez", "--dni", "30111222", "--monto", "1M",
        "--fecha-desembolso", "2024-01-13", "--primera-cuota", "2024-01-15",
        "--tasa", "8%", "--cuotas", "3", "--gestion", "enero",
    )


def test_schedule_preview(run, plans_path):
    result = run("schedule", "--monto", "1M", "--cuotas", "3", "--primera-cuota", "2024-01-15")
    assert result.exit_code == 0
    assert "333,334" in result.output
    assert "1,160,000" in result.output
    assert not plans_path.exists()


def test_schedule_export_json(run, tmp_path):
    out = tmp_path / "schedule.json"
    result = run("schedule", "-m", "300", "-n", "3", "-r", "10", "-s", "2024-01-01", "--output", str(out))
    assert result.exit_code == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [r["interes"] for r in data["rows"]] == [30, 20, 10]


def test_schedule_export_csv(run, tmp_path):
    out = tmp_path / "schedule.csv"
    result = run("schedule", "-m", "300", "-n", "3", "-s", "2024-01-31", "--output", str(out))
    assert result.exit_code == 0
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Cuota,FechaISO,Saldo,Capital,Interes,Total"
    assert lines[2].startswith("2,2024-02-29,")


def test_schedule_invalid_terms(run):
    result = run("schedule", "-m", "300", "-n", "0", "-s", "2024-01-01")
    assert result.exit_code != 0
    assert "cuotas" in result.output


def test_create_suggests_plan_number(run, plans_path):
    result = _create(run)
    assert result.exit_code == 0
    plan = PlanStore(JsonFileStorage(plans_path)).list_plans()[0]
    assert plan.plan_numero == "1"
    assert plan.gestion == "ENERO"
    assert plan.monto == 1000000
    assert plan.tasa_mensual == 0.08


def test_list_show_update_delete(run, plans_path):
    _create(run)
    plan_id = PlanStore(JsonFileStorage(plans_path)).list_plans()[0].id

    result = run("list", "--search", "ana")
    assert plan_id in result.output
    assert "1 plans" in result.output

    result = run("show", plan_id)
    assert "Ana Pérez" in result.output
    assert "TOTAL" in result.output

    result = run("update", plan_id, "--set", "cuotas=2", "--set", "formaPago=Transferencia")
    assert result.exit_code == 0
    plan = PlanStore(JsonFileStorage(plans_path)).get_plan(plan_id)
    assert plan.cuotas == 2
    assert plan.forma_pago == "Transferencia"

    assert run("delete", plan_id).exit_code == 0
    assert run("delete", plan_id).exit_code == 0
    assert run("show", plan_id).exit_code != 0


def test_update_rejects_unknown_field(run, plans_path):
    _create(run)
    plan_id = PlanStore(JsonFileStorage(plans_path)).list_plans()[0].id
    result = run("update", plan_id, "--set", "color=azul")
    assert result.exit_code != 0


def test_export(run, plans_path, tmp_path):
    _create(run)
    plan_id = PlanStore(JsonFileStorage(plans_path)).list_plans()[0].id
    out = tmp_path / "plan.xlsx"
    result = run("export", plan_id, "--output", str(out))
    assert result.exit_code == 0
    assert out.read_bytes()[:2] == b"PK"


def test_list_numeric_text_fields(run, plans_path, terms):
    store = PlanStore(JsonFileStorage(plans_path))
    plan = store.create_plan({**terms, "nombre": 12345, "dni": 30111222})
    result = run("list")
    assert result.exit_code == 0
    assert plan.id in result.output
    assert "12345" in result.output


def test_log_records_stay_off_stdout(plans_path):
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        result = CliRunner().invoke(
            cli,
            ["--storage", str(plans_path), "--log-level", "INFO", "create", "--nombre", "Ana Pérez",
             "--dni", "30111222", "--monto", "1000", "--fecha-desembolso", "2024-01-13",
             "--primera-cuota", "2024-01-15", "--cuotas", "2"],
            catch_exceptions=False,
        )
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
    assert result.exit_code == 0
    plan_id = PlanStore(JsonFileStorage(plans_path)).list_plans()[0].id
    assert result.stdout.splitlines()[0] == f"Created plan {plan_id}"
    assert "loan_plans.store" not in result.stdout
    assert "loan_plans.store" in result.stderr
