"""Console interface for the finance tracker."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

from finance_core.config import Config
from finance_core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from finance_core.export import write_transactions_csv
from finance_core.services import DashboardService
from finance_core.storage import RecordStore, create_store
from finance_core.validators import (
    INVALID_BUDGET,
    INVALID_TRANSACTION,
    parse_optional_date,
    parse_optional_month,
    validate_budget,
    validate_transaction,
)

DATE_FORMAT = "%Y-%m-%d"


def _parse_date(value: str) -> str:
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD."
        ) from exc
    return value


def _parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Amount must be a numeric value") from exc
    if amount < 0:
        raise argparse.ArgumentTypeError("Amount must not be negative")
    return value


def _load_store(args: argparse.Namespace, config: Config) -> RecordStore:
    if args.store:
        config.STORE_BACKEND = args.store
    if args.data_dir:
        config.DATA_DIR = args.data_dir
    return create_store(config)


def _format_transaction(txn: Dict[str, Any], category_name: str) -> str:
    sign = "+" if txn["type"] == "income" else "-"
    return f"[{txn['id']}] {txn['date']} {sign}{txn['amount']}  {txn['description']} ({category_name})"


def _format_budget(budget: Dict[str, Any]) -> str:
    return f"[{budget['id']}] {budget['month']} {budget['categoryId']}: {budget['amount']}"


def handle_summary(args: argparse.Namespace, store: RecordStore, user_id: str) -> None:
    summary = DashboardService(store).summary(user_id, args.month).to_dict()
    print(f"Summary for {summary['month']} ({summary['transactionCount']} transactions)")
    print(f"  Income:      {summary['income']}")
    print(f"  Expenses:    {summary['expenses']}")
    print(f"  Net savings: {summary['netSavings']}")
    for progress in summary["budgetProgress"]:
        print(
            f"  {progress['categoryName']}: spent {progress['spent']} of {progress['amount']}"
            f" ({progress['percentage']:.1f}%), remaining {progress['remaining']}"
        )


def handle_transaction(args: argparse.Namespace, store: RecordStore, user_id: str) -> None:
    if args.command == "add":
        payload = {
            "amount": args.amount,
            "description": args.description,
            "categoryId": args.category_id,
            "type": args.type,
            "date": args.date,
        }
        data = validate_transaction(payload).unwrap(INVALID_TRANSACTION)
        txn = store.create_transaction(user_id, data)
        category = store.get_category(txn.category_id)
        print("Transaction added:\n" + _format_transaction(txn.to_dict(), category.name if category else "Unknown"))
    elif args.command == "list":
        transactions = store.get_transactions(
            user_id, parse_optional_date(args.start, "start"), parse_optional_date(args.end, "end")
        )
        if not transactions:
            print("No transactions found.")
            return
        names = {category.id: category.name for category in store.get_categories(user_id)}
        print(f"Found {len(transactions)} transactions:")
        for txn in transactions:
            print(_format_transaction(txn.to_dict(), names.get(txn.category_id, "Unknown")))


def handle_budget(args: argparse.Namespace, store: RecordStore, user_id: str) -> None:
    if args.command == "add":
        payload = {"categoryId": args.category_id, "amount": args.amount, "month": args.month}
        data = validate_budget(payload).unwrap(INVALID_BUDGET)
        print("Budget added:\n" + _format_budget(store.create_budget(user_id, data).to_dict()))
    elif args.command == "update":
        changes = {
            "categoryId": args.category_id,
            "amount": args.amount,
            "month": args.month,
        }
        cleaned = {k: v for k, v in changes.items() if v is not None}
        data = validate_budget(cleaned, partial=True).unwrap(INVALID_BUDGET)
        budget = store.update_budget(args.id, data)
        if budget is None:
            raise RecordNotFoundError(f"Budget {args.id} not found")
        print("Budget updated:\n" + _format_budget(budget.to_dict()))
    elif args.command == "list":
        budgets = store.get_budgets(user_id, parse_optional_month(args.month, "month"))
        if not budgets:
            print("No budgets found.")
            return
        for budget in budgets:
            print(_format_budget(budget.to_dict()))


def handle_export(args: argparse.Namespace, store: RecordStore, user_id: str) -> None:
    transactions = store.get_transactions(
        user_id, parse_optional_date(args.start, "start"), parse_optional_date(args.end, "end")
    )
    categories = store.get_categories(user_id)
    if args.output:
        with args.output.open("w", newline="", encoding="utf-8") as handle:
            count = write_transactions_csv(handle, transactions, categories)
        print(f"Exported {count} transactions to {args.output}")
    else:
        write_transactions_csv(sys.stdout, transactions, categories)


def handle_serve(args: argparse.Namespace, store: RecordStore, config: Config) -> None:
    from api.app import create_app

    app = create_app(store=store, config=config)
    app.run(host=args.host, port=args.port, debug=args.debug)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Personal Finance Tracker CLI")
    parser.add_argument(
        "--store",
        choices=["memory", "json"],
        help="Record store backend (default: FINANCE_TRACKER_STORE or memory)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory for the JSON store (default: FINANCE_TRACKER_DATA_DIR or ./data)",
    )

    subparsers = parser.add_subparsers(dest="entity", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=5000)
    serve_parser.add_argument("--debug", action="store_true")

    summary_parser = subparsers.add_parser("summary", help="Show the dashboard summary for a month")
    summary_parser.add_argument("--month", help="YYYY-MM (default: current month)")

    txn_parser = subparsers.add_parser("transaction", help="Manage transactions")
    txn_sub = txn_parser.add_subparsers(dest="command", required=True)

    txn_add = txn_sub.add_parser("add", help="Record a transaction")
    txn_add.add_argument("amount", type=_parse_amount)
    txn_add.add_argument("description")
    txn_add.add_argument("category_id")
    txn_add.add_argument("type", choices=["income", "expense"])
    txn_add.add_argument("date", type=_parse_date)

    txn_list = txn_sub.add_parser("list", help="List transactions, most recent first")
    txn_list.add_argument("--start", type=_parse_date)
    txn_list.add_argument("--end", type=_parse_date)

    budget_parser = subparsers.add_parser("budget", help="Manage monthly budgets")
    budget_sub = budget_parser.add_subparsers(dest="command", required=True)

    budget_add = budget_sub.add_parser("add", help="Set a budget for a category and month")
    budget_add.add_argument("category_id")
    budget_add.add_argument("amount", type=_parse_amount)
    budget_add.add_argument("month")

    budget_update = budget_sub.add_parser("update", help="Change an existing budget")
    budget_update.add_argument("id")
    budget_update.add_argument("--category-id")
    budget_update.add_argument("--amount", type=_parse_amount)
    budget_update.add_argument("--month")

    budget_list = budget_sub.add_parser("list", help="List budgets")
    budget_list.add_argument("--month")

    export_parser = subparsers.add_parser("export", help="Export transactions as CSV")
    export_parser.add_argument("--start", type=_parse_date)
    export_parser.add_argument("--end", type=_parse_date)
    export_parser.add_argument("--output", type=Path, help="File to write (default: stdout)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config()
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    try:
        store = _load_store(args, config)
        user_id = config.DEFAULT_USER_ID
        if args.entity == "serve":
            handle_serve(args, store, config)
        elif args.entity == "summary":
            handle_summary(args, store, user_id)
        elif args.entity == "transaction":
            handle_transaction(args, store, user_id)
        elif args.entity == "budget":
            handle_budget(args, store, user_id)
        elif args.entity == "export":
            handle_export(args, store, user_id)
        else:  # pragma: no cover - argparse should prevent this
            parser.error(f"Unknown entity: {args.entity}")
            return 2
    except ValidationError as exc:
        details = "; ".join(f"{error.field}: {error.message}" for error in exc.errors)
        print(f"Validation error: {exc.message}" + (f" ({details})" if details else ""), file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
