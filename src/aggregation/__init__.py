"""Aggregation engine package."""

from src.aggregation.engine import (
    allocation,
    cost_basis,
    effective_price,
    expenses_by_category,
    holding_valuations,
    income_expense_totals,
    is_over_budget,
    live_price,
    portfolio_value,
    profit_and_loss,
    summarize_budget,
    summarize_portfolio,
)

__all__ = [
    "allocation",
    "cost_basis",
    "effective_price",
    "expenses_by_category",
    "holding_valuations",
    "income_expense_totals",
    "is_over_budget",
    "live_price",
    "portfolio_value",
    "profit_and_loss",
    "summarize_budget",
    "summarize_portfolio",
]
