"""
Two-Stage Request Validation

DESIGN DECISION: Form input is validated in two distinct stages before
it reaches the record store:

STAGE 1 - SCHEMA VALIDATION:
- Raw form mapping -> typed request struct (pydantic)
- Type checking, required fields, non-negative amounts
- This catches non-numeric amounts, bad dates, unknown types

STAGE 2 - SEMANTIC VALIDATION:
- Category must be one of the configured categories
- Dates too far in the future
- Zero amounts / prices (allowed, but suspicious)

Validation NEVER silently fixes issues. It reports them.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ValidationError

from src.config import AppSettings, get_settings
from src.models.records import CreateHoldingRequest, CreateTransactionRequest
from src.models.validation import IssueSeverity, ValidationIssue, ValidationResult


class RecordValidationError(Exception):
    """Request input failed validation. Carries the full result."""

    def __init__(self, entity_type: str, result: ValidationResult):
        self.entity_type = entity_type
        self.result = result
        messages = "; ".join(result.errors)
        super().__init__(f"Invalid {entity_type}: {messages}")


def _schema_issues(error: ValidationError) -> list[ValidationIssue]:
    """Turn pydantic errors into ValidationIssues."""
    issues = []
    for err in error.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "form"
        issue_type = "missing" if err.get("type") == "missing" else "invalid_value"
        issues.append(ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=f"{field}: {err.get('msg', 'invalid value')}",
            severity=IssueSeverity.ERROR,
        ))
    return issues


class RecordValidator:
    """
    Validates transaction and holding input.

    Stage 1 (schema) runs only for raw form mappings; typed requests
    have already passed it. Stage 2 (semantic) runs only if stage 1 passes.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        categories: Optional[Sequence[str]] = None,
    ):
        self._settings = settings or get_settings().app
        self._categories = list(categories) if categories is not None else self._settings.categories_list

    @property
    def categories(self) -> list[str]:
        return list(self._categories)

    # ------------------------------------------------------------------
    # Stage 2 checks
    # ------------------------------------------------------------------

    def _check_transaction(self, request: CreateTransactionRequest) -> list[ValidationIssue]:
        issues = []
        today = date.today()

        if request.category not in self._categories:
            issues.append(ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Unknown category '{request.category}'",
                severity=IssueSeverity.ERROR,
                suggested_fix=f"Choose one of: {', '.join(self._categories)}",
            ))

        max_future = today + timedelta(days=self._settings.future_date_tolerance_days)
        if request.transaction_date > max_future:
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="future_date",
                message=f"Transaction date ({request.transaction_date}) is in the future",
                severity=IssueSeverity.WARNING,
                suggested_fix="Please verify the date is correct",
            ))

        if request.amount == Decimal("0"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity=IssueSeverity.WARNING,
            ))

        return issues

    def _check_holding(self, request: CreateHoldingRequest) -> list[ValidationIssue]:
        issues = []

        if request.purchase_date > date.today():
            issues.append(ValidationIssue(
                field="purchase_date",
                issue_type="future_date",
                message=f"Purchase date ({request.purchase_date}) is in the future",
                severity=IssueSeverity.WARNING,
                suggested_fix="Please verify the date is correct",
            ))

        if request.purchase_price == Decimal("0"):
            issues.append(ValidationIssue(
                field="purchase_price",
                issue_type="suspicious_value",
                message="Purchase price is zero; cost basis will not count this holding",
                severity=IssueSeverity.WARNING,
            ))

        return issues

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _run(
        self,
        entity_type: str,
        model: type[BaseModel],
        data: Union[BaseModel, Mapping[str, Any]],
        semantic_check,
    ) -> tuple[Optional[BaseModel], ValidationResult]:
        # Stage 1: Schema validation
        if isinstance(data, model):
            request = data
        else:
            try:
                request = model.model_validate(data)
            except ValidationError as e:
                return None, ValidationResult(
                    entity_type=entity_type,
                    schema_valid=False,
                    issues=_schema_issues(e),
                )

        # Stage 2: Semantic validation
        return request, ValidationResult(
            entity_type=entity_type,
            schema_valid=True,
            issues=semantic_check(request),
        )

    def validate_transaction(
        self,
        data: Union[CreateTransactionRequest, Mapping[str, Any]],
    ) -> tuple[Optional[CreateTransactionRequest], ValidationResult]:
        """
        Validate transaction input.

        Returns:
            (request, result). request is None if schema validation failed.
        """
        return self._run("transaction", CreateTransactionRequest, data, self._check_transaction)

    def validate_holding(
        self,
        data: Union[CreateHoldingRequest, Mapping[str, Any]],
    ) -> tuple[Optional[CreateHoldingRequest], ValidationResult]:
        """
        Validate holding input.

        Returns:
            (request, result). request is None if schema validation failed.
        """
        return self._run("holding", CreateHoldingRequest, data, self._check_holding)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Plain-text summary of what needs fixing."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        errors = [i for i in result.issues if i.is_blocking]
        if errors:
            lines.append("Please fix the following:")
            for issue in errors:
                lines.append(f"  - {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"    {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)
