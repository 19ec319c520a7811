"""Boundary validation of transaction drafts."""

from cashbook.validation.validator import DraftValidator, ValidationError

__all__ = ["DraftValidator", "ValidationError"]
