"""
Payment Recording Module

Applies an actual repayment to one scheduled installment: lateness, the
prorated late fee, the resulting installment status, and whether the parent
loan is now fully repaid. Nothing here touches storage; the ledger persists
the results.
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from .exceptions import ValidationError
from .loans import Installment, InstallmentStatus, Loan, LoanStatus, parse_amount
from .money import Numeric, ZERO, round_money

DEFAULT_LATE_FEE_RATE = Decimal('0.02')
DEFAULT_LATE_FEE_PERIOD_DAYS = 30


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of applying a payment"""
    installment: Installment
    loan_status: LoanStatus
    previous_loan_status: LoanStatus

    @property
    def loan_paid_off(self) -> bool:
        """True when this payment moved the loan to paid_off"""
        return (self.loan_status == LoanStatus.PAID_OFF
                and self.previous_loan_status != LoanStatus.PAID_OFF)

    @property
    def loan_reopened(self) -> bool:
        return (self.previous_loan_status == LoanStatus.PAID_OFF
                and self.loan_status == LoanStatus.ACTIVE)


def calculate_days_late(due_date: date, paid_date: date) -> int:
    """Calendar days past the due date, zero when paid on or before it"""
    return max(0, (paid_date - due_date).days)


def calculate_late_fee(
    scheduled_amount: Decimal,
    days_late: int,
    rate: Decimal = DEFAULT_LATE_FEE_RATE,
    period_days: int = DEFAULT_LATE_FEE_PERIOD_DAYS
) -> Decimal:
    """Prorated penalty: rate per period_days of lateness, on the scheduled amount"""
    if days_late <= 0:
        return ZERO
    return round_money(scheduled_amount * rate * Decimal(days_late) / Decimal(period_days))


def resolve_installment_status(actual_amount: Decimal, scheduled_amount: Decimal) -> InstallmentStatus:
    if actual_amount >= scheduled_amount:
        return InstallmentStatus.PAID
    if actual_amount > ZERO:
        return InstallmentStatus.PARTIAL
    return InstallmentStatus.PENDING


def record_installment_payment(
    installment: Installment,
    actual_amount: Numeric,
    paid_date: date,
    payment_method: Optional[str] = None,
    payment_reference: Optional[str] = None,
    receipt_reference: Optional[str] = None,
    notes: Optional[str] = None,
    paid_by: Optional[str] = None,
    late_fee_rate: Decimal = DEFAULT_LATE_FEE_RATE,
    late_fee_period_days: int = DEFAULT_LATE_FEE_PERIOD_DAYS
) -> Installment:
    """
    Apply an actual payment to an installment

    Recording again on an already paid installment overwrites the previous
    payment details; the same inputs always give the same result.

    Returns:
        A new Installment carrying the payment details

    Raises:
        ValidationError: If the amount is negative or the date is missing
    """
    amount = parse_amount(actual_amount, "payment amount")
    if amount < ZERO:
        raise ValidationError("Payment amount cannot be negative")
    if not isinstance(paid_date, date):
        raise ValidationError("Paid date must be a date")
    if isinstance(paid_date, datetime):
        paid_date = paid_date.date()

    days_late = calculate_days_late(installment.due_date, paid_date)
    late_fee = calculate_late_fee(
        installment.scheduled_amount, days_late, late_fee_rate, late_fee_period_days
    )

    return replace(
        installment,
        actual_amount=amount,
        paid_date=paid_date,
        paid_by=paid_by,
        payment_method=payment_method,
        payment_reference=payment_reference,
        receipt_reference=receipt_reference,
        notes=notes,
        days_late=days_late,
        late_fee=late_fee,
        status=resolve_installment_status(amount, installment.scheduled_amount),
        updated_at=datetime.now(timezone.utc),
    )


def merge_installment(installments: Iterable[Installment], updated: Installment) -> List[Installment]:
    """Replace one installment in a loan's list by id"""
    return [updated if item.id == updated.id else item for item in installments]


def is_loan_paid_off(installments: Iterable[Installment]) -> bool:
    """True only when the loan has installments and every one of them is paid"""
    installments = list(installments)
    return bool(installments) and all(item.is_paid for item in installments)


def resolve_loan_status(loan: Loan, installments: Iterable[Installment]) -> LoanStatus:
    """
    Loan status after a payment

    An active loan closes once every installment is paid. A paid_off loan goes
    back to active if a correction leaves an installment unpaid. Defaulted and
    cancelled loans are never changed here.
    """
    paid_off = is_loan_paid_off(installments)
    if loan.status == LoanStatus.ACTIVE and paid_off:
        return LoanStatus.PAID_OFF
    if loan.status == LoanStatus.PAID_OFF and not paid_off:
        return LoanStatus.ACTIVE
    return loan.status


def apply_payment(
    loan: Loan,
    installments: Iterable[Installment],
    installment: Installment,
    actual_amount: Numeric,
    paid_date: date,
    **details
) -> PaymentOutcome:
    """Record a payment and re-evaluate the loan against all of its installments"""
    updated = record_installment_payment(installment, actual_amount, paid_date, **details)
    loan_installments = merge_installment(installments, updated)
    return PaymentOutcome(
        installment=updated,
        loan_status=resolve_loan_status(loan, loan_installments),
        previous_loan_status=loan.status,
    )
