"""
Amortization Module

Fixed monthly payment calculation and equal-installment schedule generation.
Every amount is rounded to cents at each step, and the rounding residual left
after the main loop is settled on the final installment so the schedule
amortizes to exactly zero.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, replace
from typing import List
import calendar

from .exceptions import ScheduleConsistencyError, ValidationError
from .money import CENT, ZERO, Numeric, round_money, to_decimal

MONTHS_PER_YEAR = Decimal('12')


@dataclass(frozen=True)
class ScheduledInstallment:
    """Single row of an amortization schedule, before it is persisted"""
    payment_number: int
    due_date: date
    principal_portion: Decimal
    interest_portion: Decimal
    scheduled_amount: Decimal
    balance_after: Decimal

    def __post_init__(self):
        calculated = self.principal_portion + self.interest_portion
        if abs(calculated - self.scheduled_amount) > CENT:
            raise ScheduleConsistencyError(
                f"Installment {self.payment_number}: amount {self.scheduled_amount} does not equal "
                f"principal {self.principal_portion} + interest {self.interest_portion}"
            )


def _validate_inputs(principal: Decimal, annual_rate: Decimal, term_months: int) -> None:
    if principal <= ZERO:
        raise ValidationError("Principal amount must be positive")
    if annual_rate < Decimal('0'):
        raise ValidationError("Annual interest rate cannot be negative")
    if isinstance(term_months, bool) or not isinstance(term_months, int) or term_months < 1:
        raise ValidationError("Term must be at least one month")


def calculate_monthly_payment(principal: Numeric, annual_rate: Numeric, term_months: int) -> Decimal:
    """
    Fixed monthly payment for an equal-installment loan

    Standard formula P * [r(1+r)^n] / [(1+r)^n - 1] with r = annual_rate / 12,
    or P / n for interest-free loans. Rounded half-up to cents.

    Raises:
        ValidationError: If principal <= 0, rate < 0 or term < 1
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    _validate_inputs(principal, annual_rate, term_months)

    if annual_rate == Decimal('0'):
        return round_money(principal / Decimal(term_months))

    monthly_rate = annual_rate / MONTHS_PER_YEAR
    factor = (Decimal('1') + monthly_rate) ** term_months
    payment = principal * (monthly_rate * factor) / (factor - Decimal('1'))
    return round_money(payment)


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping to the last day of shorter months"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def settle_final_installment(row: ScheduledInstallment, opening_balance: Decimal) -> ScheduledInstallment:
    """
    Fold the rounding residual into the last installment

    The final principal portion becomes whatever was still owed before the
    row, its amount is recomputed from the adjusted principal, and the
    closing balance is forced to zero.
    """
    adjusted_principal = round_money(opening_balance)
    return replace(
        row,
        principal_portion=adjusted_principal,
        scheduled_amount=round_money(adjusted_principal + row.interest_portion),
        balance_after=ZERO,
    )


def generate_schedule(
    principal: Numeric,
    annual_rate: Numeric,
    term_months: int,
    start_date: date
) -> List[ScheduledInstallment]:
    """
    Generate the equal-installment schedule for a loan

    Args:
        principal: Amount lent
        annual_rate: Annual interest rate as a fraction (0 for interest-free)
        term_months: Number of monthly installments
        start_date: Loan start; installment i is due i months later

    Returns:
        term_months installments ordered by payment number
    """
    principal = round_money(principal)
    annual_rate = to_decimal(annual_rate)
    monthly_payment = calculate_monthly_payment(principal, annual_rate, term_months)
    monthly_rate = annual_rate / MONTHS_PER_YEAR

    schedule: List[ScheduledInstallment] = []
    balance = principal

    for payment_number in range(1, term_months + 1):
        opening_balance = balance

        if annual_rate > Decimal('0'):
            interest_portion = round_money(balance * monthly_rate)
        else:
            interest_portion = ZERO
        principal_portion = round_money(monthly_payment - interest_portion)
        balance = max(ZERO, round_money(balance - principal_portion))

        row = ScheduledInstallment(
            payment_number=payment_number,
            due_date=add_months(start_date, payment_number),
            principal_portion=principal_portion,
            interest_portion=interest_portion,
            scheduled_amount=monthly_payment,
            balance_after=balance,
        )

        if payment_number == term_months:
            row = settle_final_installment(row, opening_balance)

        schedule.append(row)

    return schedule


def verify_schedule(schedule: List[ScheduledInstallment], principal: Numeric) -> None:
    """
    Check a schedule against its invariants

    Raises:
        ScheduleConsistencyError: If numbering is not 1..n, the last balance is
            not zero, or principal portions drift from the principal by more
            than one cent per installment
    """
    principal = round_money(principal)

    if not schedule:
        raise ScheduleConsistencyError("Schedule is empty")

    numbers = [row.payment_number for row in schedule]
    if numbers != list(range(1, len(schedule) + 1)):
        raise ScheduleConsistencyError(f"Installment numbers are not contiguous: {numbers}")

    if schedule[-1].balance_after != ZERO:
        raise ScheduleConsistencyError(
            f"Final balance is {schedule[-1].balance_after}, expected 0.00"
        )

    total_principal = sum((row.principal_portion for row in schedule), ZERO)
    drift = abs(total_principal - principal)
    if drift > CENT * len(schedule):
        raise ScheduleConsistencyError(
            f"Principal portions sum to {total_principal}, expected {principal} "
            f"(drift {drift} over {len(schedule)} installments)"
        )


def schedule_totals(schedule: List[ScheduledInstallment]) -> dict:
    """Total principal, interest and amount across a schedule"""
    return {
        "principal": sum((row.principal_portion for row in schedule), ZERO),
        "interest": sum((row.interest_portion for row in schedule), ZERO),
        "amount": sum((row.scheduled_amount for row in schedule), ZERO),
    }
