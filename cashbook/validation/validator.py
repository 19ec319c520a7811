"""
Two-Stage Draft Validation

The ledger assumes every draft it receives is well formed. This module is
the boundary that makes that true: the presentation layer hands over the
raw form values and only a clean draft comes out.

STAGE 1 - SCHEMA VALIDATION:
- Known transaction type
- Amount present, numeric, finite, not negative
- Business date present and in YYYY-MM-DD form
- Payer (income) / recipient (expense) present
- No ledger-assigned fields (id, orderNumber, createdAt)

STAGE 2 - SEMANTIC VALIDATION:
- Zero amounts
- Absurdly large amounts
- Business dates in the future

Stage 2 only produces warnings; it never blocks a draft.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

import re
from collections.abc import Callable, Mapping
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from cashbook.config import AppSettings, get_settings
from cashbook.models.transaction import (
    ExpenseDraft,
    IncomeDraft,
    TransactionDraft,
    TransactionType,
)
from cashbook.models.validation import DraftValidationResult, ValidationIssue


_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_DRAFT = TypeAdapter(TransactionDraft)

# Assigned by the ledger, never by the caller
_LEDGER_FIELDS = ("id", "orderNumber", "order_number", "createdAt", "created_at")

_COUNTERPARTY_FIELD = {
    TransactionType.INCOME: "payer",
    TransactionType.EXPENSE: "recipient",
}


class ValidationError(Exception):
    """A draft was rejected at the boundary. The ledger was not touched."""

    def __init__(self, result: DraftValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid transaction draft: {messages}")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


class DraftValidator:
    """
    Validates raw transaction input through a two-stage pipeline.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            settings: Thresholds; defaults to the application settings
            clock: Source of "now" for the future-date check
        """
        self._settings = settings or get_settings().app
        self._clock = clock or datetime.now

    @staticmethod
    def _parse_amount(value: Any) -> Optional[Decimal]:
        """Parse a form amount. Spaces are accepted as digit group separators."""
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, Decimal)):
            return Decimal(value)
        if isinstance(value, float):
            return Decimal(repr(value))
        if isinstance(value, str):
            cleaned = value.replace(" ", "").replace("\u00a0", "")
            try:
                return Decimal(cleaned)
            except InvalidOperation:
                return None
        return None

    @staticmethod
    def _parse_date(value: Any) -> Optional[date]:
        if isinstance(value, datetime):
            return None
        if isinstance(value, date):
            return value
        if isinstance(value, str) and _ISO_DATE.match(value.strip()):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                return None
        return None

    def _validate_schema(
        self,
        raw: Mapping[str, Any],
    ) -> tuple[bool, list[ValidationIssue], dict[str, Any]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues, cleaned_values)
        """
        issues = []
        cleaned = dict(raw)

        # Transaction type
        transaction_type = None
        try:
            transaction_type = TransactionType(raw.get("type"))
        except ValueError:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing" if raw.get("type") in (None, "") else "invalid_value",
                message=f"Transaction type must be 'income' or 'expense', got {raw.get('type')!r}",
                severity="error",
            ))

        # Ledger-assigned fields
        for name in _LEDGER_FIELDS:
            if name in raw:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="forbidden",
                    message=f"{name} is assigned by the ledger and must not be supplied",
                    severity="error",
                ))
                cleaned.pop(name, None)

        # Amount
        raw_amount = raw.get("amount")
        if raw_amount is None or (isinstance(raw_amount, str) and not raw_amount.strip()):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter the amount in so'm",
            ))
        else:
            amount = self._parse_amount(raw_amount)
            if amount is None or not amount.is_finite():
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message=f"Amount is not a number: {raw_amount!r}",
                    severity="error",
                    suggested_fix="Use digits only, e.g. 150000",
                ))
            elif amount < 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount cannot be negative",
                    severity="error",
                    suggested_fix="Record money going out as an expense instead",
                ))
            else:
                cleaned["amount"] = amount

        # Business date
        raw_date = raw.get("date", raw.get("business_date"))
        if raw_date is None or raw_date == "":
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))
        else:
            parsed = self._parse_date(raw_date)
            if parsed is None:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Date must be in YYYY-MM-DD form, got {raw_date!r}",
                    severity="error",
                ))
            else:
                cleaned.pop("business_date", None)
                cleaned["date"] = parsed

        # Counterparty
        if transaction_type is not None:
            field = _COUNTERPARTY_FIELD[transaction_type]
            value = raw.get(field)
            if not isinstance(value, str) or not value.strip():
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{field.capitalize()} name is required",
                    severity="error",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues, cleaned

    def _validate_semantic(
        self,
        cleaned: Mapping[str, Any],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation. Warnings only.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        amount: Decimal = cleaned["amount"]
        business_date: date = cleaned["date"]

        if amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity="warning",
                suggested_fix="Please verify the amount",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,} so'm) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        today = self._clock().date()
        max_future = today + timedelta(days=self._settings.future_date_tolerance_days)
        if business_date > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({business_date.isoformat()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(self, raw: Mapping[str, Any]) -> DraftValidationResult:
        """
        Run the full two-stage validation pipeline.

        Never raises for bad input; everything is reported as issues.
        """
        all_issues = []

        schema_valid, schema_issues, cleaned = self._validate_schema(raw)
        all_issues.extend(schema_issues)

        semantic_valid = False
        draft = None
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(cleaned)
            all_issues.extend(semantic_issues)

            try:
                draft = _DRAFT.validate_python(cleaned)
            except PydanticValidationError as e:
                schema_valid = False
                for error in e.errors():
                    all_issues.append(ValidationIssue(
                        field=".".join(str(part) for part in error["loc"][1:]) or "draft",
                        issue_type=error["type"],
                        message=error["msg"],
                        severity="error",
                    ))

        warnings = [i.message for i in all_issues if i.severity == "warning"]
        is_valid = schema_valid and semantic_valid

        return DraftValidationResult(
            transaction_type=raw.get("type") if isinstance(raw.get("type"), str) else None,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=is_valid,
            issues=all_issues,
            warnings=warnings,
            draft=draft if is_valid else None,
        )

    def require_valid(self, raw: Mapping[str, Any]) -> Union[IncomeDraft, ExpenseDraft]:
        """
        Validate and return the draft.

        Raises:
            ValidationError: If any error-level issue was found
        """
        result = self.validate(raw)
        if not result.is_valid:
            raise ValidationError(result)
        return result.draft

    def get_user_friendly_summary(
        self,
        result: DraftValidationResult,
    ) -> str:
        """
        Generate a short summary of validation results for the cashier.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ The order cannot be recorded:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
