"""
Order numbering.

Order numbers look like KK-2024-0007 (income) or CHQ-2024-0003 (expense).

The sequence is a live recount: it is the number of transactions of the
same type currently in the ledger plus one. It is NOT a persisted counter,
so after a deletion the next number can repeat one that was issued before.
Callers must not assume the sequence only grows.
"""

from collections.abc import Iterable

from cashbook.models.transaction import Transaction, TransactionType


ORDER_PREFIXES = {
    TransactionType.INCOME: "KK",    # kirim kassa order
    TransactionType.EXPENSE: "CHQ",  # chiqim kassa order
}

SEQUENCE_WIDTH = 4


def format_order_number(transaction_type: TransactionType, year: int, sequence: int) -> str:
    """Render an order number from its parts."""
    prefix = ORDER_PREFIXES[TransactionType(transaction_type)]
    return f"{prefix}-{year:04d}-{sequence:0{SEQUENCE_WIDTH}d}"


def next_order_number(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
    year: int,
) -> str:
    """Number the next transaction of this type would receive. Pure."""
    transaction_type = TransactionType(transaction_type)
    existing = sum(1 for t in transactions if t.type == transaction_type)
    return format_order_number(transaction_type, year, existing + 1)
