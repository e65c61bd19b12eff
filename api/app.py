"""Flask REST API exposing the finance tracker store and dashboard."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from finance_core.config import Config
from finance_core.exceptions import FieldError, PersistenceError, RecordNotFoundError, ValidationError
from finance_core.export import iter_transactions_csv
from finance_core.logging_config import get_logger, setup_logging
from finance_core.services import DashboardService
from finance_core.storage import RecordStore, create_store
from finance_core.validators import (
    INVALID_BUDGET,
    INVALID_CATEGORY,
    INVALID_TRANSACTION,
    parse_optional_date,
    parse_optional_month,
    validate_budget,
    validate_category,
    validate_transaction,
)

INVALID_QUERY = "Invalid query parameters"

# Fixed messages returned on unexpected failures, keyed by view function name.
FAILURE_MESSAGES = {
    "list_categories": "Failed to fetch categories",
    "create_category": "Failed to create category",
    "list_transactions": "Failed to fetch transactions",
    "create_transaction": "Failed to create transaction",
    "list_budgets": "Failed to fetch budgets",
    "create_budget": "Failed to create budget",
    "update_budget": "Failed to update budget",
    "dashboard_summary": "Failed to fetch dashboard summary",
    "category_breakdown": "Failed to fetch category breakdown",
    "daily_totals": "Failed to fetch daily totals",
    "export_csv": "Failed to export CSV",
}

logger = get_logger("api")


def create_app(
    store: Optional[RecordStore] = None,
    config: Optional[Config] = None,
    clock: Optional[Callable[[], date]] = None,
) -> Flask:
    config = config or Config()
    setup_logging(config)
    app = Flask(__name__)

    if config.dev_mode:
        CORS(app, resources={r"/api/*": {"origins": "*"}}, supports_credentials=True)
    elif config.ALLOWED_ORIGINS:
        CORS(app, resources={r"/api/*": {"origins": config.ALLOWED_ORIGINS}}, supports_credentials=True)
    else:
        CORS(app)

    store = store if store is not None else create_store(config)
    dashboard = DashboardService(store, clock or date.today)
    user_id = config.DEFAULT_USER_ID
    app.extensions["finance_store"] = store

    def _success(payload: Any, status: int = 200):
        return jsonify(payload), status

    def _failure_message() -> str:
        return FAILURE_MESSAGES.get(request.endpoint or "", "Internal server error")

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        logger.info("%s %s rejected: %s %s", request.method, request.path, exc.message, exc.details())
        return jsonify({"error": exc.message, "kind": "validation", "details": exc.details()}), 400

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        logger.info("%s %s: %s", request.method, request.path, exc)
        return jsonify({"error": str(exc), "kind": "not_found"}), 404

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        logger.error("Persistence failure in %s: %s", request.endpoint, exc)
        return jsonify({"error": _failure_message(), "kind": "persistence"}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.name, "kind": "http"}), exc.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        logger.exception("Unexpected failure in %s", request.endpoint)
        return jsonify({"error": _failure_message(), "kind": "internal"}), 500

    def _json_body(message: str) -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError(message, [FieldError("body", "Request content must be application/json")])
        data = request.get_json(silent=True)
        if data is None:
            raise ValidationError(message, [FieldError("body", "Malformed JSON body")])
        return data

    def _query_date(name: str) -> Optional[date]:
        try:
            return parse_optional_date(request.args.get(name), name)
        except ValidationError as exc:
            raise ValidationError(INVALID_QUERY, [FieldError(name, exc.message)]) from exc

    def _query_month(name: str) -> Optional[str]:
        try:
            return parse_optional_month(request.args.get(name), name)
        except ValidationError as exc:
            raise ValidationError(INVALID_QUERY, [FieldError(name, exc.message)]) from exc

    def _query_days(default: int = 7) -> int:
        raw = request.args.get("days")
        if raw is None or not raw.strip():
            return default
        try:
            return int(raw)
        except ValueError as exc:
            raise ValidationError(INVALID_QUERY, [FieldError("days", "days must be an integer")]) from exc

    @app.get("/api/categories")
    def list_categories():
        categories = store.get_categories(user_id)
        return _success([category.to_dict() for category in categories])

    @app.post("/api/categories")
    def create_category():
        data = validate_category(_json_body(INVALID_CATEGORY)).unwrap(INVALID_CATEGORY)
        category = store.create_category(user_id, data)
        return _success(category.to_dict())

    @app.get("/api/transactions")
    def list_transactions():
        transactions = store.get_transactions(user_id, _query_date("startDate"), _query_date("endDate"))
        return _success([txn.to_dict() for txn in transactions])

    @app.post("/api/transactions")
    def create_transaction():
        data = validate_transaction(_json_body(INVALID_TRANSACTION)).unwrap(INVALID_TRANSACTION)
        transaction = store.create_transaction(user_id, data)
        return _success(transaction.to_dict())

    @app.get("/api/budgets")
    def list_budgets():
        month = _query_month("month")
        budgets = store.get_budgets(user_id, month)
        return _success([budget.to_dict() for budget in budgets])

    @app.post("/api/budgets")
    def create_budget():
        data = validate_budget(_json_body(INVALID_BUDGET)).unwrap(INVALID_BUDGET)
        budget = store.create_budget(user_id, data)
        return _success(budget.to_dict())

    @app.put("/api/budgets/<budget_id>")
    def update_budget(budget_id: str):
        changes = validate_budget(_json_body(INVALID_BUDGET), partial=True).unwrap(INVALID_BUDGET)
        budget = store.update_budget(budget_id, changes)
        if budget is None:
            raise RecordNotFoundError("Budget not found")
        return _success(budget.to_dict())

    @app.get("/api/dashboard/summary")
    def dashboard_summary():
        summary = dashboard.summary(user_id, request.args.get("month"))
        return _success(summary.to_dict())

    @app.get("/api/dashboard/categories")
    def category_breakdown():
        shares = dashboard.category_breakdown(user_id, request.args.get("month"))
        return _success([share.to_dict() for share in shares])

    @app.get("/api/dashboard/daily")
    def daily_totals():
        totals = dashboard.daily_totals(user_id, _query_days())
        return _success([total.to_dict() for total in totals])

    @app.get("/api/export/csv")
    def export_csv():
        transactions = store.get_transactions(user_id, _query_date("startDate"), _query_date("endDate"))
        categories = store.get_categories(user_id)
        response = Response(iter_transactions_csv(transactions, categories), mimetype="text/csv")
        response.headers.set("Content-Disposition", "attachment", filename="transactions.csv")
        return response

    return app
