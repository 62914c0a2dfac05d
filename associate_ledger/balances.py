"""
Balance Projection Module

Read-side views over loans and installments: per-associate exposure in each
direction, per-loan repayment progress, and the portfolio summary. Nothing
is cached or stored; every call recomputes from the records it is given.
"""

from decimal import Decimal
from datetime import date, timedelta
from dataclasses import dataclass, field
from typing import Dict, Iterable, List
import calendar

from .loans import Installment, InstallmentStatus, Loan, LoanDirection, LoanStatus
from .money import ZERO, round_money, sum_money


@dataclass(frozen=True)
class LoanBalance:
    """Outstanding principal of one active loan"""
    loan_id: str
    loan_number: str
    direction: LoanDirection
    principal_amount: Decimal
    paid_to_date: Decimal
    outstanding: Decimal

    @property
    def is_overpaid(self) -> bool:
        return self.outstanding < ZERO


@dataclass(frozen=True)
class AssociateBalance:
    """Net exposure between the company and one associate"""
    associate_id: str
    company_owes_associate: Decimal
    associate_owes_company: Decimal
    net: Decimal
    loans: List[LoanBalance] = field(default_factory=list)

    @property
    def overpaid_loan_ids(self) -> List[str]:
        return [item.loan_id for item in self.loans if item.is_overpaid]


@dataclass(frozen=True)
class LoanProgress:
    """Repayment progress of a single loan"""
    loan_id: str
    paid_installments: int
    term_months: int
    percent_complete: Decimal
    total_paid: Decimal
    outstanding: Decimal
    total_late_fees: Decimal
    overdue_installments: int


@dataclass(frozen=True)
class PortfolioSummary:
    """Company-wide view of all associate loans"""
    total_loans: int
    active_loans: int
    total_principal: Decimal
    total_outstanding: Decimal
    total_paid_this_month: Decimal
    overdue_payments: int
    upcoming_payments: int
    loans_to_company: int
    loans_from_company: int
    to_company_balance: Decimal
    from_company_balance: Decimal


def _group_by_loan(installments: Iterable[Installment]) -> Dict[str, List[Installment]]:
    grouped: Dict[str, List[Installment]] = {}
    for item in installments:
        grouped.setdefault(item.loan_id, []).append(item)
    return grouped


def paid_to_date(installments: Iterable[Installment]) -> Decimal:
    """Sum of actual amounts on paid and partial installments"""
    return sum_money(item.actual_amount for item in installments if item.counts_toward_repayment)


def loan_balance(loan: Loan, installments: Iterable[Installment]) -> LoanBalance:
    """Principal minus everything repaid so far; negative means overpaid"""
    paid = paid_to_date(item for item in installments if item.loan_id == loan.id)
    return LoanBalance(
        loan_id=loan.id,
        loan_number=loan.loan_number,
        direction=loan.direction,
        principal_amount=loan.principal_amount,
        paid_to_date=paid,
        outstanding=round_money(loan.principal_amount - paid),
    )


def associate_balance(
    associate_id: str,
    loans: Iterable[Loan],
    installments: Iterable[Installment]
) -> AssociateBalance:
    """
    Net exposure for one associate across all of their active loans

    Only active loans count. Paid-off, defaulted and cancelled loans are a
    historical record and contribute nothing. Outstanding amounts are not
    floored at zero so an overpayment shows up as a negative balance.
    """
    by_loan = _group_by_loan(installments)
    company_owes = ZERO
    associate_owes = ZERO
    balances: List[LoanBalance] = []

    for loan in loans:
        if loan.associate_id != associate_id or loan.status != LoanStatus.ACTIVE:
            continue
        balance = loan_balance(loan, by_loan.get(loan.id, []))
        balances.append(balance)
        if loan.direction == LoanDirection.FROM_COMPANY:
            company_owes = round_money(company_owes + balance.outstanding)
        else:
            associate_owes = round_money(associate_owes + balance.outstanding)

    return AssociateBalance(
        associate_id=associate_id,
        company_owes_associate=company_owes,
        associate_owes_company=associate_owes,
        net=round_money(company_owes - associate_owes),
        loans=balances,
    )


def loan_progress(loan: Loan, installments: Iterable[Installment], as_of: date) -> LoanProgress:
    items = [item for item in installments if item.loan_id == loan.id]
    paid_count = sum(1 for item in items if item.is_paid)
    total_paid = paid_to_date(items)
    percent = (Decimal(paid_count) * Decimal('100') / Decimal(loan.term_months)).quantize(Decimal('0.1'))
    return LoanProgress(
        loan_id=loan.id,
        paid_installments=paid_count,
        term_months=loan.term_months,
        percent_complete=percent,
        total_paid=total_paid,
        outstanding=round_money(loan.principal_amount - total_paid),
        total_late_fees=sum_money(item.late_fee for item in items),
        overdue_installments=sum(1 for item in items if item.is_overdue(as_of)),
    )


def portfolio_summary(
    loans: Iterable[Loan],
    installments: Iterable[Installment],
    as_of: date
) -> PortfolioSummary:
    """
    Portfolio dashboard figures as of a date

    Overdue and upcoming count pending installments of active loans only.
    Overdue is anything due before as_of; upcoming and paid-this-month are
    limited to the calendar month containing as_of.
    """
    loans = list(loans)
    installments = list(installments)
    by_loan = _group_by_loan(installments)

    month_start = as_of.replace(day=1)
    month_end = as_of.replace(day=calendar.monthrange(as_of.year, as_of.month)[1])

    active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
    to_company = [loan for loan in active if loan.direction == LoanDirection.TO_COMPANY]
    from_company = [loan for loan in active if loan.direction == LoanDirection.FROM_COMPANY]

    def outstanding(group: List[Loan]) -> Decimal:
        return sum_money(loan_balance(loan, by_loan.get(loan.id, [])).outstanding for loan in group)

    to_company_balance = outstanding(to_company)
    from_company_balance = outstanding(from_company)

    active_ids = {loan.id for loan in active}
    overdue = [item for item in installments if item.loan_id in active_ids and item.is_overdue(as_of)]
    upcoming = [
        item for item in installments
        if item.loan_id in active_ids
        and item.status == InstallmentStatus.PENDING and as_of <= item.due_date <= month_end
    ]
    paid_this_month = sum_money(
        item.actual_amount for item in installments
        if item.is_paid and item.paid_date and month_start <= item.paid_date <= month_end
    )

    return PortfolioSummary(
        total_loans=len(loans),
        active_loans=len(active),
        total_principal=sum_money(loan.principal_amount for loan in active),
        total_outstanding=round_money(to_company_balance + from_company_balance),
        total_paid_this_month=paid_this_month,
        overdue_payments=len(overdue),
        upcoming_payments=len(upcoming),
        loans_to_company=len(to_company),
        loans_from_company=len(from_company),
        to_company_balance=to_company_balance,
        from_company_balance=from_company_balance,
    )


def upcoming_window(as_of: date, days: int) -> tuple:
    """Inclusive (start, end) dates for an upcoming-installments query"""
    return as_of, as_of + timedelta(days=days)
