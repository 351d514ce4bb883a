"""Derived views of the application state: filtered expenses and totals."""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .state import AppState, Filters
from ..core import money
from ..core.models import UNSET, Expense


@dataclass(frozen=True)
class Totals:
    count: int = 0
    raw_base_amount: float = 0.0
    base_amount: float = 0.0
    by_category: Dict[Optional[int], float] = field(default_factory=dict)


def has_active_filters(filters: Filters) -> bool:
    return filters.category_id is not UNSET or bool(filters.start_date) or bool(filters.end_date)


def filter_expenses(expenses: Iterable[Expense], filters: Filters) -> List[Expense]:
    """Return the expenses matching ``filters``, keeping their order."""
    result = []
    for expense in expenses:
        if filters.category_id is not UNSET and expense.category_id != filters.category_id:
            continue
        if filters.start_date and expense.date < filters.start_date:
            continue
        if filters.end_date and expense.date > filters.end_date:
            continue
        result.append(expense)
    return result


def filtered_expenses(state: AppState) -> List[Expense]:
    return filter_expenses(state.expenses, state.filters)


def calculate_totals(expenses: Iterable[Expense]) -> Totals:
    """Sum the base amounts of ``expenses``, overall and per category.

    The overall raw sum keeps full precision. The rounded total and the per-category totals
    use banker's rounding to two decimal places. Uncategorised expenses are keyed by None.

    Args:
        expenses (Iterable[Expense]): The expenses to sum.

    Returns:
        Totals: The totals.
    """
    df = pd.DataFrame(
        [(e.category_id, e.base_amount) for e in expenses],
        columns=['category_id', 'base_amount'],
    )
    if df.empty:
        return Totals()

    raw = money.total(df['base_amount'].tolist())
    grouped = df.groupby('category_id', dropna=False, sort=False)['base_amount'].sum()

    by_category: Dict[Optional[int], float] = {}
    for key, value in grouped.items():
        category_id = None if pd.isna(key) else int(key)
        by_category[category_id] = money.bankers_round(float(value))

    return Totals(
        count=len(df),
        raw_base_amount=raw,
        base_amount=money.bankers_round(raw),
        by_category=by_category,
    )


def filtered_totals(state: AppState) -> Totals:
    return calculate_totals(filtered_expenses(state))
