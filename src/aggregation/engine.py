"""
Aggregation Engine

DESIGN DECISION: Every figure shown to the user is derived here by pure
functions over the records and a price map. Nothing in this module
touches storage, the network or any shared state, so the same inputs
always give the same outputs.

Money is Decimal throughout. Percentages are not rounded here;
rounding and currency formatting belong to the presentation layer.

Division is always guarded: an empty or zero-valued portfolio gives
0% allocation for every holding rather than NaN.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from src.models.records import (
    AllocationSlice,
    BudgetSummary,
    Holding,
    HoldingValuation,
    IncomeExpenseTotals,
    PortfolioSummary,
    PriceMap,
    Transaction,
    TransactionType,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_OVER_BUDGET_THRESHOLD = Decimal("0.5")

Number = Union[Decimal, int, float, str]


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() so that floats like 0.1 are not expanded to binary noise
    return Decimal(str(value))


# =============================================================================
# BUDGET
# =============================================================================

def income_expense_totals(transactions: Iterable[Transaction]) -> IncomeExpenseTotals:
    """Sum amounts by transaction type. Empty input gives zero for both."""
    income = ZERO
    expense = ZERO
    for txn in transactions:
        if txn.type == TransactionType.INCOME:
            income += txn.amount
        else:
            expense += txn.amount
    return IncomeExpenseTotals(income=income, expense=expense)


def expenses_by_category(
    transactions: Iterable[Transaction],
    categories: Sequence[str],
) -> dict[str, Decimal]:
    """
    Total expense amount per category.

    Every canonical category appears, in the given order, even with a
    zero total. Expense categories outside the canonical list are
    appended afterwards in first-seen order, so the values always sum
    to the overall expense total.
    """
    totals: dict[str, Decimal] = {category: ZERO for category in categories}
    for txn in transactions:
        if txn.type != TransactionType.EXPENSE:
            continue
        totals[txn.category] = totals.get(txn.category, ZERO) + txn.amount
    return totals


def is_over_budget(
    income: Number,
    expense: Number,
    threshold: Number = DEFAULT_OVER_BUDGET_THRESHOLD,
) -> bool:
    """
    True when expense exceeds income * threshold.

    The threshold multiplies income instead of dividing expense by it,
    so zero income never divides by zero: (0, 0) is not over budget,
    while any expense against zero income is. A non-finite input
    (NaN, infinity) gives False.
    """
    values = (_dec(income), _dec(expense), _dec(threshold))
    if not all(v.is_finite() for v in values):
        return False
    income_d, expense_d, threshold_d = values
    return expense_d > income_d * threshold_d


# =============================================================================
# PORTFOLIO
# =============================================================================

def live_price(holding: Holding, price_map: PriceMap) -> Optional[Decimal]:
    """The holding's live price as a finite Decimal, or None."""
    price = price_map.get(holding.symbol)
    if price is None:
        return None
    price = _dec(price)
    if not price.is_finite():
        return None
    return price


def effective_price(holding: Holding, price_map: PriceMap) -> Decimal:
    """Live price when we have one, purchase price otherwise."""
    price = live_price(holding, price_map)
    if price is None:
        return holding.purchase_price
    return price


def portfolio_value(holdings: Iterable[Holding], price_map: PriceMap) -> Decimal:
    """Sum of quantity * effective price."""
    return sum(
        (h.quantity * effective_price(h, price_map) for h in holdings),
        ZERO,
    )


def cost_basis(holdings: Iterable[Holding]) -> Decimal:
    """Sum of quantity * purchase price."""
    return sum((h.quantity * h.purchase_price for h in holdings), ZERO)


def profit_and_loss(value: Number, basis: Number) -> Decimal:
    return _dec(value) - _dec(basis)


def allocation(
    holdings: Iterable[Holding],
    price_map: PriceMap,
    total_value: Number,
) -> list[AllocationSlice]:
    """
    Each holding's share of total portfolio value, as a percentage.

    When total_value is zero, negative or not finite every share is 0.
    """
    total = _dec(total_value)
    usable = total.is_finite() and total > ZERO
    slices = []
    for holding in holdings:
        if usable:
            percent = holding.quantity * effective_price(holding, price_map) / total * HUNDRED
        else:
            percent = ZERO
        slices.append(AllocationSlice(
            name=holding.name,
            symbol=holding.symbol,
            percent=percent,
        ))
    return slices


def holding_valuations(
    holdings: Iterable[Holding],
    price_map: PriceMap,
) -> list[HoldingValuation]:
    """Per-holding current price, value, cost and P&L."""
    rows = []
    for holding in holdings:
        price = effective_price(holding, price_map)
        value = holding.quantity * price
        cost = holding.cost
        rows.append(HoldingValuation(
            holding_id=holding.id,
            symbol=holding.symbol,
            name=holding.name,
            quantity=holding.quantity,
            current_price=price,
            price_is_live=live_price(holding, price_map) is not None,
            value=value,
            cost=cost,
            profit_and_loss=value - cost,
        ))
    return rows


# =============================================================================
# SUMMARIES
# =============================================================================

def summarize_budget(
    transactions: Sequence[Transaction],
    categories: Sequence[str],
    threshold: Number = DEFAULT_OVER_BUDGET_THRESHOLD,
) -> BudgetSummary:
    totals = income_expense_totals(transactions)
    return BudgetSummary(
        totals=totals,
        expenses_by_category=expenses_by_category(transactions, categories),
        is_over_budget=is_over_budget(totals.income, totals.expense, threshold),
        threshold=_dec(threshold),
    )


def summarize_portfolio(
    holdings: Sequence[Holding],
    price_map: PriceMap,
    unavailable_symbols: Optional[list[str]] = None,
) -> PortfolioSummary:
    value = portfolio_value(holdings, price_map)
    basis = cost_basis(holdings)
    if unavailable_symbols is None:
        unavailable_symbols = sorted({h.symbol for h in holdings if live_price(h, price_map) is None})
    return PortfolioSummary(
        portfolio_value=value,
        cost_basis=basis,
        profit_and_loss=profit_and_loss(value, basis),
        allocation=allocation(holdings, price_map, value),
        holdings=holding_valuations(holdings, price_map),
        unavailable_symbols=unavailable_symbols,
    )
