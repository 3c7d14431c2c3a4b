"""HTTP API for loan plans.

A thin Flask layer over ``PlanStore``: it parses JSON bodies, maps store
errors to HTTP status codes, adds permissive CORS headers for the browser
client and streams the spreadsheet export.
"""

import logging
from io import BytesIO
from typing import Optional

from flask import Flask, jsonify, request, send_file

from loan_plans.config import Settings
from loan_plans.exceptions import NotFound, PlanError, StorageError
from loan_plans.log_setup import setup_logging
from loan_plans.report import export_filename, render_workbook
from loan_plans.storage import create_storage
from loan_plans.store import PlanStore

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise PlanError("Request body must be a JSON object")
    return payload


def create_app(store: Optional[PlanStore] = None, settings: Optional[Settings] = None) -> Flask:
    """Build the Flask application around ``store``.

    When no store is given one is created from ``settings.storage``.
    """
    settings = settings or Settings.from_env()
    store = store or PlanStore(create_storage(settings.storage))

    app = Flask(__name__)
    app.config["PLAN_STORE"] = store
    app.json.sort_keys = False

    @app.before_request
    def preflight():
        if request.method == "OPTIONS":
            return app.response_class(status=200)
        return None

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = settings.cors_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response

    @app.errorhandler(PlanError)
    def handle_plan_error(exc: PlanError):
        if isinstance(exc, NotFound):
            status = 404
        elif isinstance(exc, StorageError):
            logger.error("Plan storage failure: %s", exc.message)
            status = 500
        else:
            status = 400
        body = {"error": exc.message}
        if exc.field:
            body["field"] = exc.field
        return jsonify(body), status

    @app.post("/plans")
    def create_plan():
        plan = store.create_plan(_json_body())
        return jsonify(plan.to_dict()), 201

    @app.get("/plans")
    def list_plans():
        plans = store.list_plans(request.args.get("search"))
        return jsonify([plan.to_dict() for plan in plans])

    @app.get("/plans/suggest-numero")
    def suggest_numero():
        return jsonify({"planNumero": store.suggest_plan_numero()})

    @app.get("/plans/<plan_id>")
    def get_plan(plan_id: str):
        return jsonify(store.get_plan(plan_id).to_dict())

    @app.put("/plans/<plan_id>")
    def update_plan(plan_id: str):
        plan = store.update_plan(plan_id, _json_body())
        return jsonify(plan.to_dict())

    @app.delete("/plans/<plan_id>")
    def delete_plan(plan_id: str):
        store.delete_plan(plan_id)
        return "", 204

    @app.get("/plans/<plan_id>/excel")
    def export_plan(plan_id: str):
        plan = store.get_plan(plan_id)
        return send_file(
            BytesIO(render_workbook(plan)),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=export_filename(plan),
        )

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_format)
    app = create_app(settings=settings)
    logger.info("API ready on http://localhost:%s", settings.port)
    app.run(host=settings.host, port=settings.port)
