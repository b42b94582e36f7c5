"""
Data Models Package

This package contains all Pydantic models used in the Personal Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from src.models.records import (
    AllocationSlice,
    AssetType,
    BudgetSummary,
    CreateHoldingRequest,
    CreateTransactionRequest,
    Holding,
    HoldingValuation,
    IncomeExpenseTotals,
    LoginRequest,
    PortfolioSummary,
    PriceMap,
    RegisterRequest,
    Transaction,
    TransactionType,
    User,
)
from src.models.validation import (
    IssueSeverity,
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "AllocationSlice",
    "AssetType",
    "BudgetSummary",
    "CreateHoldingRequest",
    "CreateTransactionRequest",
    "Holding",
    "HoldingValuation",
    "IncomeExpenseTotals",
    "LoginRequest",
    "PortfolioSummary",
    "PriceMap",
    "RegisterRequest",
    "Transaction",
    "TransactionType",
    "User",
    # Validation models
    "IssueSeverity",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
