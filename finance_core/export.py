"""CSV export of transactions."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Iterator, List, TextIO

from .models import Category, Transaction
from .services import UNKNOWN_CATEGORY

CSV_HEADER = ["Date", "Description", "Category", "Type", "Amount"]


def transaction_rows(
    transactions: Iterable[Transaction], categories: Iterable[Category]
) -> Iterator[List[str]]:
    """Yield one CSV row per transaction, resolving category names by id."""
    names = {category.id: category.name for category in categories}
    for txn in transactions:
        payload = txn.to_dict()
        yield [
            payload["date"],
            txn.description,
            names.get(txn.category_id, UNKNOWN_CATEGORY),
            txn.type,
            payload["amount"],
        ]


def _writer(handle: TextIO):
    # Fields containing commas, quotes or newlines are quoted; everything else is written bare.
    return csv.writer(handle, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")


def iter_transactions_csv(
    transactions: Iterable[Transaction], categories: Iterable[Category]
) -> Iterator[str]:
    """Yield the CSV document line by line, suitable for a streamed response."""
    buffer = io.StringIO()
    writer = _writer(buffer)
    rows = transaction_rows(transactions, categories)
    writer.writerow(CSV_HEADER)
    for row in rows:
        yield _drain(buffer)
        writer.writerow(row)
    yield _drain(buffer)


def write_transactions_csv(
    handle: TextIO, transactions: Iterable[Transaction], categories: Iterable[Category]
) -> int:
    """Write the CSV document to ``handle`` and return the number of data rows."""
    writer = _writer(handle)
    writer.writerow(CSV_HEADER)
    count = 0
    for row in transaction_rows(transactions, categories):
        writer.writerow(row)
        count += 1
    return count


def _drain(buffer: io.StringIO) -> str:
    chunk = buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)
    return chunk
