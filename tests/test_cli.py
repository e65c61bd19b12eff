"""Tests for the console interface."""

from __future__ import annotations

import csv

from finance_tracker.cli import main


def test_summary_for_seed_month(capsys):
    assert main(["summary", "--month", "2025-08"]) == 0

    out = capsys.readouterr().out
    assert "Summary for 2025-08 (5 transactions)" in out
    assert "Net savings: 2223.11" in out
    assert "Food & Dining: spent 45.50 of 300.00 (15.2%), remaining 254.50" in out


def test_summary_with_invalid_month_fails(capsys):
    assert main(["summary", "--month", "2025-13"]) == 1

    assert "Validation error" in capsys.readouterr().err


def test_json_store_keeps_transactions_between_runs(tmp_path, capsys):
    base = ["--store", "json", "--data-dir", str(tmp_path)]

    assert main(base + ["transaction", "add", "19.99", "Cinema", "cat-3", "expense", "2025-08-22"]) == 0
    assert main(base + ["transaction", "list", "--start", "2025-08-22"]) == 0

    out = capsys.readouterr().out
    assert "Transaction added" in out
    assert "2025-08-22 -19.99  Cinema (Entertainment)" in out
    assert "Found 2 transactions" not in out
    assert "Found 1 transactions" in out


def test_budget_commands(tmp_path, capsys):
    base = ["--store", "json", "--data-dir", str(tmp_path)]

    assert main(base + ["budget", "add", "cat-4", "120", "2025-08"]) == 0
    assert main(base + ["budget", "update", "budget-1", "--amount", "310"]) == 0
    assert main(base + ["budget", "list", "--month", "2025-08"]) == 0

    out = capsys.readouterr().out
    assert "[budget-1] 2025-08 cat-1: 310.00" in out
    assert "cat-4: 120.00" in out


def test_budget_update_for_missing_budget_fails(capsys):
    assert main(["budget", "update", "missing", "--amount", "5"]) == 1

    assert "Budget missing not found" in capsys.readouterr().err


def test_transaction_with_unknown_category_fails(capsys):
    assert main(["transaction", "add", "5", "Mystery", "cat-404", "expense", "2025-08-22"]) == 1

    assert "categoryId" in capsys.readouterr().err


def test_export_to_file(tmp_path, capsys):
    output = tmp_path / "out.csv"

    assert main(["export", "--start", "2025-08-15", "--output", str(output)]) == 0

    with output.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["Description"] for row in rows] == [
        "Lunch at Italian Restaurant",
        "Gas Station Fill-up",
        "Salary",
    ]
    assert "Exported 3 transactions" in capsys.readouterr().out


def test_invalid_store_setting_is_reported(monkeypatch, capsys):
    monkeypatch.setenv("FINANCE_TRACKER_STORE", "sqlite")

    assert main(["summary"]) == 1

    assert "Configuration error" in capsys.readouterr().err


def test_budget_list_rejects_malformed_month(capsys):
    assert main(["budget", "list", "--month", "2025-8"]) == 1

    assert "month" in capsys.readouterr().err
