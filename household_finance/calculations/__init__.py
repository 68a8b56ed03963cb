"""Balance calculations package."""

from household_finance.calculations.balances import (
    card_issuer_of,
    compute_monthly_balance,
    summarize_totals,
)
from household_finance.calculations.months import (
    distinct_months_present,
    month_key_of,
    month_label,
    rolling_months,
    today_key,
)
from household_finance.calculations.projections import (
    evaluate_payment_feasibility,
    project_balances,
)

__all__ = [
    # Month keys
    "distinct_months_present",
    "month_key_of",
    "month_label",
    "rolling_months",
    "today_key",
    # Aggregation
    "card_issuer_of",
    "compute_monthly_balance",
    "summarize_totals",
    # Projection
    "evaluate_payment_feasibility",
    "project_balances",
]
