"""Ledger package: the transaction store and its numbering and storage format."""

from cashbook.ledger.codec import dump_transactions, load_transactions
from cashbook.ledger.numbering import ORDER_PREFIXES, format_order_number, next_order_number
from cashbook.ledger.store import DEFAULT_STORAGE_KEY, LedgerStore

__all__ = [
    "DEFAULT_STORAGE_KEY",
    "LedgerStore",
    "ORDER_PREFIXES",
    "dump_transactions",
    "format_order_number",
    "load_transactions",
    "next_order_number",
]
