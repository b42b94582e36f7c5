"""
Core Data Models for Personal Finance Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for local storage and logging

DESIGN DECISION: Money and quantities are Decimal, never float.
Prices arriving from quote services as floats are converted via str()
so that 0.1 stays 0.1.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class AssetType(str, Enum):
    """
    Kind of asset a holding represents.

    Decides which quote service is asked for a live price.
    """
    STOCK = "stock"
    CRYPTO = "crypto"


# Symbol -> live unit price. Symbols whose lookup failed are absent.
PriceMap = dict[str, Decimal]


# =============================================================================
# STORED RECORDS
# =============================================================================

class User(BaseModel):
    """
    A registered account.

    CRITICAL: Only the bcrypt hash of the password is ever stored.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Assigned by the record store on creation"
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=320,
        description="Login email, unique case-insensitively"
    )
    password_hash: str = Field(
        ...,
        min_length=1,
        description="bcrypt hash of the password"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the account was registered"
    )

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class Transaction(BaseModel):
    """A single income or expense entry owned by one user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Assigned by the record store on creation"
    )
    user_id: int = Field(
        ...,
        description="Owning user"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount, never negative; direction comes from type"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    transaction_date: date


class Holding(BaseModel):
    """
    A recorded ownership of a quantity of a stock or digital asset.

    purchase_price is the per-unit price at acquisition and is the
    fallback whenever no live price is available.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Assigned by the record store on creation"
    )
    user_id: int = Field(
        ...,
        description="Owning user"
    )
    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Ticker or asset identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    quantity: Decimal = Field(
        ...,
        gt=0,
    )
    purchase_price: Decimal = Field(
        ...,
        ge=0,
        description="Price per unit at acquisition"
    )
    purchase_date: date
    type: AssetType

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.purchase_price


# =============================================================================
# REQUEST STRUCTS - what callers hand to the flows
# =============================================================================

class RegisterRequest(BaseModel):
    """Registration input. Password is still cleartext here; it is hashed before storage."""
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(
        ...,
        min_length=1,
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return str(v).lower()

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        """bcrypt only looks at the first 72 bytes; longer input is refused."""
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class CreateTransactionRequest(BaseModel):
    """Typed form data for a new transaction (owner comes from the session)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., ge=0)
    type: TransactionType = TransactionType.EXPENSE
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    transaction_date: date = Field(default_factory=date.today)

    def to_record(self, user_id: int) -> Transaction:
        return Transaction(user_id=user_id, **self.model_dump())


class CreateHoldingRequest(BaseModel):
    """Typed form data for a new holding (owner comes from the session)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    symbol: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)
    quantity: Decimal = Field(..., gt=0)
    purchase_price: Decimal = Field(..., ge=0)
    purchase_date: date = Field(default_factory=date.today)
    type: AssetType = AssetType.STOCK

    @field_validator('symbol')
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper()

    def to_record(self, user_id: int) -> Holding:
        return Holding(user_id=user_id, **self.model_dump())


# =============================================================================
# SUMMARY MODELS - output of the aggregation engine
# =============================================================================

class IncomeExpenseTotals(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class AllocationSlice(BaseModel):
    """One holding's share of total portfolio value."""

    name: str
    symbol: str
    percent: Decimal = Field(
        ...,
        ge=0,
        description="Share of portfolio value, 0-100"
    )


class HoldingValuation(BaseModel):
    """Per-holding valuation row (current price, value, P&L)."""

    holding_id: Optional[int]
    symbol: str
    name: str
    quantity: Decimal
    current_price: Decimal
    price_is_live: bool = Field(
        ...,
        description="False when current_price fell back to the purchase price"
    )
    value: Decimal
    cost: Decimal
    profit_and_loss: Decimal


class BudgetSummary(BaseModel):
    totals: IncomeExpenseTotals
    expenses_by_category: dict[str, Decimal]
    is_over_budget: bool
    threshold: Decimal


class PortfolioSummary(BaseModel):
    portfolio_value: Decimal
    cost_basis: Decimal
    profit_and_loss: Decimal
    allocation: list[AllocationSlice] = Field(default_factory=list)
    holdings: list[HoldingValuation] = Field(default_factory=list)
    unavailable_symbols: list[str] = Field(
        default_factory=list,
        description="Symbols valued at purchase price because no live price came back"
    )
