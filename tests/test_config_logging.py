import json
import logging

from loan_plans.config import Settings
from loan_plans.log_setup import JsonFormatter, setup_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("LOAN_PLANS_STORAGE", "PORT", "LOAN_PLANS_CORS_ORIGIN", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.storage == "data/plans.json"
        assert settings.port == 3000
        assert settings.cors_origin == "*"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOAN_PLANS_STORAGE", "sqlite:///plans.db")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("LOG_FORMAT", "json")
        settings = Settings.from_env()
        assert settings.storage == "sqlite:///plans.db"
        assert settings.port == 8080
        assert settings.log_format == "json"


class TestLogging:
    def test_setup_sets_level(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging("debug", "json")
            assert logging.getLogger("loan_plans").level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_json_formatter(self):
        record = logging.LogRecord("loan_plans.store", logging.INFO, __file__, 1, "Created plan %s", ("abc",), None)
        data = json.loads(JsonFormatter().format(record))
        assert data["message"] == "Created plan abc"
        assert data["level"] == "INFO"
        assert data["logger"] == "loan_plans.store"
