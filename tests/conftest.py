import sys
from pathlib import Path

import pytest

# make the repository root importable without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from loan_plans.storage import JsonFileStorage  # noqa: E402
from loan_plans.store import PlanStore  # noqa: E402


@pytest.fixture
def plans_path(tmp_path):
    return tmp_path / "data" / "plans.json"


@pytest.fixture
def storage(plans_path):
    return JsonFileStorage(plans_path)


@pytest.fixture
def store(storage):
    return PlanStore(storage)


@pytest.fixture
def terms():
    return {
        "planNumero": "7",
        "gestion": "ENERO",
        "nombre": "Ana Pérez",
        "dni": "30111222",
        "monto": 1000000,
        "fechaDesembolso": "2024-01-13",
        "primeraCuotaFecha": "2024-01-15",
        "tasaMensual": 0.08,
        "cuotas": 3,
    }
