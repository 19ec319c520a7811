"""
Serialization of the whole transaction collection.

The durable value is a JSON array of transaction records with camelCase
keys. It is always written and read as one unit.
"""

import json
from collections.abc import Iterable
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from cashbook.models.transaction import Transaction
from cashbook.services.storage.interface import CorruptStateError


_COLLECTION = TypeAdapter(list[Transaction])


def dump_transactions(transactions: Iterable[Transaction]) -> str:
    """Serialize the collection in stored (insertion) order."""
    return _COLLECTION.dump_json(list(transactions), by_alias=True).decode("utf-8")


def load_transactions(raw: Optional[str], key: Optional[str] = None) -> list[Transaction]:
    """
    Parse a stored collection.

    Missing or blank data means an empty ledger. Anything else that does
    not parse into unique, well-formed transactions raises CorruptStateError.
    """
    if raw is None or not raw.strip():
        return []

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptStateError(f"Stored ledger is not valid JSON: {e}", key=key) from e

    if not isinstance(data, list):
        raise CorruptStateError(
            f"Stored ledger must be a JSON array, got {type(data).__name__}",
            key=key,
        )

    try:
        transactions = _COLLECTION.validate_python(data)
    except ValidationError as e:
        raise CorruptStateError(
            f"Stored ledger has {e.error_count()} invalid field(s): {e}",
            key=key,
        ) from e

    seen: set[str] = set()
    for tx in transactions:
        if tx.id in seen:
            raise CorruptStateError(f"Duplicate transaction id in stored ledger: {tx.id}", key=key)
        seen.add(tx.id)

    return transactions
