"""
Validation Models

Result types produced by the record validator. A result is derived
entirely from its issues: it is valid when schema parsing succeeded
and no issue is an error. Warnings never block a save.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    """One problem with one input field."""

    field: str = Field(
        ...,
        description="Input field the issue is about ('form' if none)"
    )
    issue_type: str = Field(
        ...,
        description="Machine-readable kind, e.g. 'missing', 'unknown_category', 'future_date'"
    )
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    suggested_fix: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == IssueSeverity.ERROR


class ValidationResult(BaseModel):
    """
    Outcome of validating one transaction or holding form.

    Stage 1: Schema (types, required fields, non-negative numbers)
    Stage 2: Semantic (category set, date sanity); skipped if stage 1 fails
    """

    entity_type: str = Field(
        ...,
        description="'transaction' or 'holding'"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    schema_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def semantic_valid(self) -> bool:
        return self.schema_valid and not self.has_errors

    @property
    def is_valid(self) -> bool:
        return self.semantic_valid

    @property
    def errors(self) -> list[str]:
        return [i.message for i in self.issues if i.is_blocking]

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if not i.is_blocking]

    @property
    def has_errors(self) -> bool:
        return any(i.is_blocking for i in self.issues)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def issues_as_dicts(self) -> list[dict]:
        """Compact form for audit details."""
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]
