"""
Loan Records Module

Loan terms, loans between the company and its associates, and the scheduled
installments a loan owns. Loans run in either direction: an associate may
borrow from the company or lend to it.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import Optional
from enum import Enum

from .exceptions import ValidationError
from .money import Numeric, ZERO, round_money, to_decimal
from .storage import StorageRecord


class LoanDirection(Enum):
    """Who owes whom"""
    TO_COMPANY = "to_company"      # Associate owes the company
    FROM_COMPANY = "from_company"  # Company owes the associate


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"          # Initial state, repayments in progress
    PAID_OFF = "paid_off"      # Every installment paid
    DEFAULTED = "defaulted"    # Set by explicit action only
    CANCELLED = "cancelled"    # Set by explicit action only


class InstallmentStatus(Enum):
    """Installment states"""
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    SKIPPED = "skipped"        # Set outside the engine


@dataclass
class LoanTerms:
    """Economic terms of a loan, validated on construction"""
    principal_amount: Decimal
    annual_interest_rate: Decimal      # e.g. 0.08 for 8%, 0 for interest-free
    term_months: int
    start_date: date

    def __post_init__(self):
        try:
            self.principal_amount = round_money(self.principal_amount)
            self.annual_interest_rate = to_decimal(self.annual_interest_rate)
        except ValueError as e:
            raise ValidationError(str(e))

        if self.principal_amount <= ZERO:
            raise ValidationError("Principal amount must be positive")
        if self.annual_interest_rate < Decimal('0'):
            raise ValidationError("Annual interest rate cannot be negative")
        if isinstance(self.term_months, bool) or not isinstance(self.term_months, int):
            raise ValidationError("Term must be a whole number of months")
        if self.term_months < 1:
            raise ValidationError("Term must be at least one month")
        if not isinstance(self.start_date, date):
            raise ValidationError("Start date must be a date")


@dataclass
class Loan(StorageRecord):
    """Loan between the company and one associate"""
    loan_number: str
    associate_id: str
    direction: LoanDirection
    principal_amount: Decimal
    annual_interest_rate: Decimal
    term_months: int
    monthly_payment: Decimal
    total_interest: Decimal
    total_amount: Decimal
    start_date: date
    end_date: date
    status: LoanStatus = LoanStatus.ACTIVE
    contract_reference: Optional[str] = None
    board_decision_reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None

    decimal_fields = ('principal_amount', 'annual_interest_rate', 'monthly_payment',
                      'total_interest', 'total_amount')
    date_fields = ('start_date', 'end_date')
    enum_fields = {'direction': LoanDirection, 'status': LoanStatus}

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def owed_by_company(self) -> bool:
        """True when the company is the debtor"""
        return self.direction == LoanDirection.FROM_COMPANY


@dataclass
class Installment(StorageRecord):
    """One scheduled repayment of a loan"""
    loan_id: str
    payment_number: int
    due_date: date
    principal_portion: Decimal
    interest_portion: Decimal
    scheduled_amount: Decimal
    balance_after: Decimal
    actual_amount: Decimal = ZERO
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_date: Optional[date] = None
    paid_by: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    receipt_reference: Optional[str] = None
    notes: Optional[str] = None
    days_late: int = 0
    late_fee: Decimal = ZERO

    decimal_fields = ('principal_portion', 'interest_portion', 'scheduled_amount',
                      'balance_after', 'actual_amount', 'late_fee')
    date_fields = ('due_date', 'paid_date')
    enum_fields = {'status': InstallmentStatus}

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    @property
    def counts_toward_repayment(self) -> bool:
        """Paid and partial installments reduce the outstanding balance"""
        return self.status in (InstallmentStatus.PAID, InstallmentStatus.PARTIAL)

    def is_overdue(self, as_of: date) -> bool:
        return self.status == InstallmentStatus.PENDING and self.due_date < as_of


def parse_direction(value) -> LoanDirection:
    """Accept a LoanDirection or its string value"""
    try:
        return value if isinstance(value, LoanDirection) else LoanDirection(value)
    except ValueError:
        raise ValidationError(f"Unknown loan direction: {value!r}")


def parse_amount(value: Numeric, name: str = "amount") -> Decimal:
    """Read a money input, rejecting anything that is not a number"""
    try:
        return round_money(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value!r}")
