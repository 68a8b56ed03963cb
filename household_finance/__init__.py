"""
Household Finance Tracker - Source Package

Records incomes, credit-card charges (installments included) and debit
expenses, and answers two questions every month: what is the balance,
and can the card statement be paid.

DESIGN PRINCIPLES:
1. The balance mirrors the bank: unpaid card charges don't reduce it
2. Calculations are pure functions over an immutable snapshot
3. A CSV import replaces the card charges, it never merges
4. Every change to the ledger is auditable
5. Storage layer is swappable (Google Sheets, local JSON)
"""

__version__ = "1.0.0"
__author__ = "Household Finance Team"
