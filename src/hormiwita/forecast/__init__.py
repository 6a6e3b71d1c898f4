"""Savings forecast module."""
from .savings import (
    ExpenseRemovedDetail,
    SavingsScenario,
    calculate_monthly_savings,
    generate_forecast_data,
    top_expense_categories
)

__all__ = [
    "ExpenseRemovedDetail",
    "SavingsScenario",
    "calculate_monthly_savings",
    "generate_forecast_data",
    "top_expense_categories"
]
