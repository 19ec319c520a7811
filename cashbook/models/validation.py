"""
Validation Models

Results of checking a draft at the boundary, before it reaches the ledger.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from cashbook.models.transaction import ExpenseDraft, IncomeDraft


class ValidationIssue(BaseModel):
    """One problem found in a draft, tied to the field that caused it."""

    field: str = Field(
        ...,
        description="Form field the issue refers to"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Message shown to the cashier"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Hint on how to correct the input"
    )


class DraftValidationResult(BaseModel):
    """
    Result of the two-stage draft validation.

    Stage 1: Schema validation (type, amount, date, counterparty)
    Stage 2: Semantic validation (plausibility checks)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    transaction_type: Optional[str] = None

    # Stage results
    schema_valid: bool
    semantic_valid: bool

    # Overall result
    is_valid: bool = Field(
        ...,
        description="True when no error-level issue was found"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)

    # Non-blocking messages, shown before the order is saved
    warnings: list[str] = Field(default_factory=list)

    # The parsed draft, present only when is_valid
    draft: Optional[Union[IncomeDraft, ExpenseDraft]] = None

    @property
    def has_errors(self) -> bool:
        """True if at least one issue blocks the draft."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Number of blocking issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
