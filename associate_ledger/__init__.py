"""
Associate Loan Ledger

Loans between a company and its associates in both directions, with exact
Decimal amortization schedules, late-fee aware repayment recording and
per-associate balance projections.
"""

__version__ = "1.0.0"
