"""
Balance Projection and Statement Feasibility

Runs the monthly aggregation across a window of months and answers
whether a month's card statement can be paid from that month's
balance, or how many of the following months are needed to cover it.
"""

from decimal import Decimal
from typing import Iterable, Sequence

import structlog

from household_finance.calculations.balances import compute_monthly_balance
from household_finance.models.records import (
    CardCharge,
    DebitExpense,
    Income,
    MonthlyBalance,
    PaymentFeasibility,
)


logger = structlog.get_logger(__name__)


def project_balances(
    months: Iterable[str],
    incomes: Sequence[Income],
    charges: Sequence[CardCharge],
    debits: Sequence[DebitExpense],
) -> list[MonthlyBalance]:
    """One MonthlyBalance per month key, in the order given (duplicates kept)."""
    return [
        compute_monthly_balance(month, incomes, charges, debits)
        for month in months
    ]


def evaluate_payment_feasibility(
    month: str,
    incomes: Sequence[Income],
    charges: Sequence[CardCharge],
    debits: Sequence[DebitExpense],
    future_months: Iterable[str],
) -> PaymentFeasibility:
    """
    Decide whether the card statement of `month` fits in its balance.

    The statement total is the month's *paid* card total. When the
    balance is negative, later months from `future_months` are
    accumulated (starting from the negative balance) until the running
    total reaches the statement total. If the months run out first,
    months_until_coverable is the number of months scanned.

    Args:
        month: Month key of the statement
        incomes, charges, debits: Record collections
        future_months: Candidate months, walked in the given order;
            keys not after `month` are skipped

    Returns:
        PaymentFeasibility for `month`
    """
    balance_month = compute_monthly_balance(month, incomes, charges, debits)

    card_total = balance_month.card_charges_paid_total
    incomes_total = balance_month.incomes_total
    available_balance = balance_month.balance
    can_pay = available_balance >= 0

    if incomes_total > 0:
        coverage_percent = card_total / incomes_total * 100
    else:
        coverage_percent = Decimal("0")

    months_until_coverable = 0
    if not can_pay and card_total > 0:
        accumulated = available_balance
        for future_month in future_months:
            if future_month <= month:
                continue
            future = compute_monthly_balance(future_month, incomes, charges, debits)
            accumulated += future.balance
            months_until_coverable += 1
            if accumulated >= card_total:
                break
        else:
            logger.info(
                "statement_not_coverable_in_window",
                month=month,
                card_total=str(card_total),
                accumulated=str(accumulated),
                months_scanned=months_until_coverable,
            )

    return PaymentFeasibility(
        month=month,
        card_total_for_month=card_total,
        incomes_for_month=incomes_total,
        available_balance=available_balance,
        can_pay=can_pay,
        coverage_percent=coverage_percent,
        months_until_coverable=months_until_coverable,
    )
