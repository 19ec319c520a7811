"""
Ledger Store

The single authoritative collection of cash transactions.

DESIGN DECISION: The store is an ordinary object constructed by the
caller and passed to whoever needs it. There is no module-level instance.

INVARIANTS:
1. The in-memory collection and the durable copy never diverge. Every
   add/delete is followed by a full save; if the save fails the mutation
   is undone before the error propagates.
2. Transactions are never mutated in place. They are created by
   add_transaction() and removed by delete_transaction(), nothing else.
3. Every read view (sorted lists, balances, cash book, today's totals) is
   computed on demand. No aggregate is cached or persisted.

ORDERING: Views sort by business date, newest first, with a stable sort.
Transactions sharing a date keep their insertion order.

CONCURRENCY: Not thread-safe. One caller at a time. A multi-caller setup
must serialize add/delete (mutation + save as one critical section),
otherwise two adds can race on the same order-number recount.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

import structlog
from pydantic import TypeAdapter

from cashbook.ledger.codec import dump_transactions, load_transactions
from cashbook.ledger.numbering import next_order_number
from cashbook.models.transaction import (
    CashBookRow,
    DeleteOutcome,
    ExpenseDraft,
    ExpenseTransaction,
    IncomeDraft,
    IncomeTransaction,
    LedgerSnapshot,
    TodayStats,
    Transaction,
    TransactionDraft,
    TransactionType,
    new_transaction_id,
)
from cashbook.services.storage.interface import (
    KeyValueStorageInterface,
    PersistenceError,
)


logger = structlog.get_logger(__name__)

DEFAULT_STORAGE_KEY = "cashTransactions"

_DRAFT = TypeAdapter(TransactionDraft)

_TRANSACTION_CLASSES = {
    TransactionType.INCOME: IncomeTransaction,
    TransactionType.EXPENSE: ExpenseTransaction,
}


class LedgerStore:
    """
    Durable, ordered store of income and expense transactions.

    Example:
        store = LedgerStore(LocalFileKeyValueStorage("data"))
        tx = store.add_transaction(IncomeDraft(payer="A", amount=1000, date="2024-01-01"))
        store.calculate_balance()  # Decimal("1000")
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Load the ledger from durable storage.

        Args:
            storage: Key-value backend holding the serialized collection
            storage_key: Key of the collection inside the backend
            clock: Source of "now" (local time); drives created_at,
                   the order-number year and "today"
            id_factory: Generator for transaction ids

        Raises:
            PersistenceError: The backend could not be read
            CorruptStateError: Stored data exists but cannot be parsed
        """
        self._storage = storage
        self._key = storage_key
        self._clock = clock or datetime.now
        self._id_factory = id_factory or new_transaction_id
        self._transactions: list[Transaction] = load_transactions(
            storage.load(storage_key), key=storage_key
        )
        logger.debug(
            "ledger_loaded",
            storage_key=storage_key,
            transaction_count=len(self._transactions),
        )

    @property
    def storage_key(self) -> str:
        return self._key

    def __len__(self) -> int:
        return len(self._transactions)

    def count(self) -> int:
        """Number of transactions in the ledger."""
        return len(self._transactions)

    # =========================================================================
    # Mutations
    # =========================================================================

    def generate_order_number(self, transaction_type: Union[TransactionType, str]) -> str:
        """
        Order number the next transaction of this type would receive.

        seq = (existing transactions of this type) + 1, so numbers can be
        reused after a deletion. No side effects.
        """
        return next_order_number(
            self._transactions,
            TransactionType(transaction_type),
            self._clock().year,
        )

    def add_transaction(
        self,
        draft: Union[IncomeDraft, ExpenseDraft, Mapping],
    ) -> Transaction:
        """
        Record a new transaction and persist the whole ledger.

        Assigns id, order_number and created_at. A mapping is parsed as a
        draft first; drafts must not carry id, orderNumber or createdAt.

        Raises:
            PersistenceError: The save failed; the ledger is unchanged
        """
        if isinstance(draft, Mapping):
            draft = _DRAFT.validate_python(draft)

        transaction_type = TransactionType(draft.type)
        model = _TRANSACTION_CLASSES[transaction_type]
        transaction = model(
            id=self._new_id(),
            order_number=self.generate_order_number(transaction_type),
            created_at=self._clock(),
            **draft.model_dump(exclude={"type"}),
        )

        self._transactions.append(transaction)
        try:
            self._persist()
        except PersistenceError:
            self._transactions.pop()
            logger.warning(
                "ledger_add_rolled_back",
                order_number=transaction.order_number,
            )
            raise

        return transaction

    def delete_transaction(self, transaction_id: str) -> DeleteOutcome:
        """
        Remove a transaction by id and persist the whole ledger.

        Returns:
            DeleteOutcome.DELETED, or DeleteOutcome.NOT_FOUND for an
            unknown id (nothing is written in that case)

        Raises:
            PersistenceError: The save failed; the transaction is restored
        """
        index = self._index_of(transaction_id)
        if index is None:
            return DeleteOutcome.NOT_FOUND

        removed = self._transactions.pop(index)
        try:
            self._persist()
        except PersistenceError:
            self._transactions.insert(index, removed)
            logger.warning(
                "ledger_delete_rolled_back",
                order_number=removed.order_number,
            )
            raise

        return DeleteOutcome.DELETED

    # =========================================================================
    # Queries
    # =========================================================================

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Look up a transaction by id."""
        index = self._index_of(transaction_id)
        return None if index is None else self._transactions[index]

    def get_all_transactions(self) -> list[Transaction]:
        """All transactions, newest business date first. Ties keep insertion order."""
        return sorted(
            self._transactions,
            key=lambda t: t.business_date,
            reverse=True,
        )

    def get_transactions_by_type(
        self,
        transaction_type: Union[TransactionType, str],
    ) -> list[Transaction]:
        """get_all_transactions() restricted to one type, same order."""
        transaction_type = TransactionType(transaction_type)
        return [t for t in self.get_all_transactions() if t.type == transaction_type]

    def calculate_balance(self) -> Decimal:
        """Sum of incomes minus sum of expenses over the whole ledger."""
        return sum((t.signed_amount for t in self._transactions), Decimal("0"))

    def get_cash_book_view(self) -> list[CashBookRow]:
        """
        Transactions annotated with the running balance, newest first.

        The balance is accumulated oldest to newest over the exact reverse
        of get_all_transactions(), so the newest row always carries the
        same figure as calculate_balance().
        """
        running = Decimal("0")
        rows = []
        for transaction in reversed(self.get_all_transactions()):
            running += transaction.signed_amount
            rows.append(CashBookRow(transaction=transaction, running_balance=running))
        rows.reverse()
        return rows

    def get_today_stats(self) -> TodayStats:
        """
        Income and expense totals whose business date is today.

        created_at is irrelevant here: a back-dated entry recorded today
        does not count.
        """
        today = self._clock().date()
        income = Decimal("0")
        expense = Decimal("0")
        for t in self._transactions:
            if t.business_date != today:
                continue
            if t.type == TransactionType.INCOME:
                income += t.amount
            else:
                expense += t.amount
        return TodayStats(day=today, income=income, expense=expense)

    def snapshot(self) -> LedgerSnapshot:
        """Everything the presentation layer renders, read in one go."""
        all_transactions = self.get_all_transactions()
        return LedgerSnapshot(
            taken_at=self._clock(),
            balance=self.calculate_balance(),
            transaction_count=len(all_transactions),
            today=self.get_today_stats(),
            transactions=all_transactions,
            incomes=[t for t in all_transactions if t.type == TransactionType.INCOME],
            expenses=[t for t in all_transactions if t.type == TransactionType.EXPENSE],
            cash_book=self.get_cash_book_view(),
            next_income_number=self.generate_order_number(TransactionType.INCOME),
            next_expense_number=self.generate_order_number(TransactionType.EXPENSE),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _index_of(self, transaction_id: str) -> Optional[int]:
        for index, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                return index
        return None

    def _new_id(self) -> str:
        existing = {t.id for t in self._transactions}
        while True:
            candidate = self._id_factory()
            if candidate not in existing:
                return candidate

    def _persist(self) -> None:
        """Write the complete collection, replacing the stored value."""
        payload = dump_transactions(self._transactions)
        try:
            saved = self._storage.save(self._key, payload)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save ledger: {e}") from e
        if saved is False:
            raise PersistenceError(f"Storage refused to save key {self._key!r}")
