"""
Monthly Balance Aggregation

DESIGN DECISION: The balance mirrors the bank account, not an accrual
ledger. A card charge only reduces the balance once it is marked paid,
and then by what was actually paid. Debits always count.

All functions here are pure: they read the collections they are given
and never touch storage.
"""

from decimal import Decimal
from typing import Iterable

import structlog

from household_finance.models.records import (
    CardCharge,
    CardIssuer,
    DebitExpense,
    Income,
    LedgerTotals,
    MonthlyBalance,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def compute_monthly_balance(
    month: str,
    incomes: Iterable[Income],
    charges: Iterable[CardCharge],
    debits: Iterable[DebitExpense],
) -> MonthlyBalance:
    """
    Aggregate one month of records.

    Args:
        month: Month key (YYYY-MM) to aggregate
        incomes: All known incomes
        charges: All known card charges
        debits: All known debit expenses

    Returns:
        MonthlyBalance where
        balance = incomes_total - card_charges_paid_total - debits_total
    """
    incomes_total = sum((i.amount for i in incomes if i.month == month), ZERO)

    month_charges = [c for c in charges if c.month == month]
    card_charges_paid_total = sum((c.settled_amount for c in month_charges), ZERO)

    month_debits = [d for d in debits if d.month == month]
    debits_total = sum((d.amount for d in month_debits), ZERO)

    balance = incomes_total - card_charges_paid_total - debits_total

    if month_charges or month_debits:
        logger.debug(
            "monthly_balance_computed",
            month=month,
            incomes_total=str(incomes_total),
            card_charges={
                "count": len(month_charges),
                "paid_total": str(card_charges_paid_total),
                "items": [
                    {
                        "description": c.description,
                        "installment_amount": str(c.installment_amount),
                        "paid": c.paid,
                    }
                    for c in month_charges
                ],
            },
            debits={
                "count": len(month_debits),
                "total": str(debits_total),
            },
            balance=str(balance),
        )

    return MonthlyBalance(
        month=month,
        incomes_total=incomes_total,
        card_charges_paid_total=card_charges_paid_total,
        debits_total=debits_total,
        balance=balance,
    )


def card_issuer_of(charge: CardCharge) -> CardIssuer:
    """Mercado Pago charges are recognised by name; everything else is Nubank."""
    if "mercado" in charge.description.lower():
        return CardIssuer.MERCADO_PAGO
    return CardIssuer.NUBANK


def summarize_totals(
    charges: Iterable[CardCharge],
    debits: Iterable[DebitExpense],
) -> LedgerTotals:
    """
    Ledger-wide totals per card issuer plus debits.

    Unlike the monthly balance, these sum every installment whether or
    not it has been paid.
    """
    per_issuer = {issuer: ZERO for issuer in CardIssuer}
    for charge in charges:
        per_issuer[card_issuer_of(charge)] += charge.installment_amount

    debits_total = sum((d.amount for d in debits), ZERO)

    return LedgerTotals(
        nubank_total=per_issuer[CardIssuer.NUBANK],
        mercado_pago_total=per_issuer[CardIssuer.MERCADO_PAGO],
        debits_total=debits_total,
        grand_total=sum(per_issuer.values(), ZERO) + debits_total,
    )
