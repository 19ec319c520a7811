"""
Core Data Models for the Cash Ledger

A transaction is either an income ("kirim") or an expense ("chiqim").
Both share identity, amount and dates; the descriptive fields differ.

DESIGN DECISION: Income and expense are separate Pydantic models joined
into a tagged union on the `type` field. Pydantic then enforces which
descriptive fields are legal for which variant, instead of one loosely
typed record that carries every field.

The serialized form uses camelCase keys (orderNumber, createdAt, docRef).
That is the record layout of the stored "cashTransactions" collection,
so ledgers recorded by the web front end load unchanged. Amounts are
written as JSON numbers, createdAt as a UTC timestamp, and descriptive
text (payer, purpose, notes, ...) exactly as it was entered.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Kind of cash movement."""
    INCOME = "income"    # kirim
    EXPENSE = "expense"  # chiqim


class DeleteOutcome(str, Enum):
    """
    Result of a delete request.

    Deleting an unknown id is a defined outcome, not an error.
    """
    DELETED = "deleted"
    NOT_FOUND = "not_found"


def new_transaction_id() -> str:
    """Default id generator. Only uniqueness matters, not the format."""
    return uuid4().hex


def _amount_to_json(value: Decimal) -> Union[int, float]:
    """Amounts are JSON numbers in the stored record, as the web front end expects."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Decimal in memory, plain number on the wire
Amount = Annotated[Decimal, PlainSerializer(_amount_to_json, when_used="json")]


_LEDGER_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
)


# =============================================================================
# DRAFTS - what the presentation layer hands to the ledger
# =============================================================================

class _DraftBase(BaseModel):
    """Fields every draft must carry. No id, order number or timestamp."""
    model_config = _LEDGER_CONFIG

    amount: Amount = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Amount in so'm"
    )
    business_date: date = Field(
        ...,
        alias="date",
        description="When the transaction economically occurred"
    )
    debit: str = Field(default="", description="Debit account code")
    credit: str = Field(default="", description="Credit account code")
    purpose: str = Field(default="", description="Purpose of the payment")


class IncomeDraft(_DraftBase):
    """Cash receipt order (kirim order) before it is recorded."""
    type: Literal["income"] = "income"
    payer: str = Field(default="", description="Who paid the cash in")
    notes: str = Field(default="", description="Free-form notes")


class ExpenseDraft(_DraftBase):
    """Cash disbursement order (chiqim order) before it is recorded."""
    type: Literal["expense"] = "expense"
    recipient: str = Field(default="", description="Who received the cash")
    doc_ref: str = Field(default="", description="Supporting document reference")


TransactionDraft = Annotated[
    Union[IncomeDraft, ExpenseDraft],
    Field(discriminator="type"),
]


# =============================================================================
# RECORDED TRANSACTIONS
# =============================================================================

class _TransactionBase(BaseModel):
    """
    Fields shared by every recorded transaction.

    CRITICAL: Recorded transactions are frozen. id, type, order_number and
    created_at are assigned once by the ledger and never change.
    """
    model_config = ConfigDict(**_LEDGER_CONFIG, frozen=True)

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Opaque unique identifier, used for lookup and deletion"
    )
    order_number: str = Field(
        ...,
        min_length=1,
        description="Human-facing code, e.g. KK-2024-0001"
    )
    amount: Amount = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Amount in so'm"
    )
    business_date: date = Field(
        ...,
        alias="date",
        description="When the transaction economically occurred"
    )
    created_at: datetime = Field(
        ...,
        description="When the transaction was recorded, in UTC (audit trail only)"
    )
    debit: str = ""
    credit: str = ""
    purpose: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Legacy records use millisecond timestamps as ids."""
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        """Kept in UTC. A naive value is read as local time."""
        return v.astimezone(timezone.utc)

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType(self.type)

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on the cash balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class IncomeTransaction(_TransactionBase):
    """A recorded cash receipt."""
    type: Literal["income"] = "income"
    payer: str = ""
    notes: str = ""

    @property
    def counterparty(self) -> str:
        return self.payer


class ExpenseTransaction(_TransactionBase):
    """A recorded cash disbursement."""
    type: Literal["expense"] = "expense"
    recipient: str = ""
    doc_ref: str = ""

    @property
    def counterparty(self) -> str:
        return self.recipient


Transaction = Annotated[
    Union[IncomeTransaction, ExpenseTransaction],
    Field(discriminator="type"),
]


# =============================================================================
# DERIVED VIEWS - computed on demand, never persisted
# =============================================================================

class CashBookRow(BaseModel):
    """
    One line of the cash book.

    running_balance is the balance as of and including this transaction.
    """
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    running_balance: Decimal

    @property
    def is_income(self) -> bool:
        return self.transaction.type == TransactionType.INCOME


class TodayStats(BaseModel):
    """Income and expense totals for today's business date."""
    model_config = ConfigDict(frozen=True)

    day: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class LedgerSnapshot(BaseModel):
    """
    Everything the presentation layer renders after a change.

    Mirrors one full render cycle: both order tables, the cash book,
    the stat cards and the pre-filled next order numbers.
    """
    model_config = ConfigDict(frozen=True)

    taken_at: datetime
    balance: Decimal
    transaction_count: int = Field(ge=0)
    today: TodayStats
    transactions: list[Transaction] = Field(default_factory=list)
    incomes: list[IncomeTransaction] = Field(default_factory=list)
    expenses: list[ExpenseTransaction] = Field(default_factory=list)
    cash_book: list[CashBookRow] = Field(default_factory=list)
    next_income_number: str
    next_expense_number: str
