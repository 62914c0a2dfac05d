"""
Test suite for payment recording

Tests lateness, prorated late fees, installment status resolution and the
loan closure check, independently of any storage.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from associate_ledger.exceptions import ValidationError
from associate_ledger.loans import (
    Installment, InstallmentStatus, Loan, LoanDirection, LoanStatus
)
from associate_ledger.payments import (
    apply_payment, calculate_days_late, calculate_late_fee, is_loan_paid_off,
    merge_installment, record_installment_payment, resolve_installment_status,
    resolve_loan_status
)


def make_installment(number=1, scheduled=Decimal('1000.00'), due=date(2024, 1, 1),
                     status=InstallmentStatus.PENDING, loan_id="loan-1"):
    now = datetime.now(timezone.utc)
    return Installment(
        id=f"{loan_id}_{number}",
        created_at=now,
        updated_at=now,
        loan_id=loan_id,
        payment_number=number,
        due_date=due,
        principal_portion=scheduled,
        interest_portion=Decimal('0.00'),
        scheduled_amount=scheduled,
        balance_after=Decimal('0.00'),
        status=status
    )


def make_loan(status=LoanStatus.ACTIVE, term=3):
    now = datetime.now(timezone.utc)
    return Loan(
        id="loan-1",
        created_at=now,
        updated_at=now,
        loan_number="LOAN-2024-0001",
        associate_id="assoc-1",
        direction=LoanDirection.TO_COMPANY,
        principal_amount=Decimal('3000.00'),
        annual_interest_rate=Decimal('0'),
        term_months=term,
        monthly_payment=Decimal('1000.00'),
        total_interest=Decimal('0.00'),
        total_amount=Decimal('3000.00'),
        start_date=date(2023, 12, 1),
        end_date=date(2024, 3, 1),
        status=status
    )


class TestLateness:
    """Test days-late and late fee calculation"""

    def test_on_time_is_zero(self):
        assert calculate_days_late(date(2024, 1, 1), date(2024, 1, 1)) == 0

    def test_early_is_zero(self):
        assert calculate_days_late(date(2024, 1, 10), date(2024, 1, 1)) == 0

    def test_calendar_day_difference(self):
        assert calculate_days_late(date(2024, 1, 1), date(2024, 2, 15)) == 45
        assert calculate_days_late(date(2024, 2, 28), date(2024, 3, 1)) == 2

    def test_no_fee_when_on_time(self):
        assert calculate_late_fee(Decimal('1000.00'), 0) == Decimal('0')

    def test_prorated_fee(self):
        """2% per 30 days of the scheduled amount"""
        assert calculate_late_fee(Decimal('1000.00'), 45) == Decimal('30.00')
        assert calculate_late_fee(Decimal('1000.00'), 30) == Decimal('20.00')
        assert calculate_late_fee(Decimal('1000.00'), 1) == Decimal('0.67')

    def test_custom_rate_and_period(self):
        assert calculate_late_fee(Decimal('500.00'), 7, Decimal('0.05'), 7) == Decimal('25.00')


class TestInstallmentStatus:
    """Test status resolution from the amount paid"""

    def test_full_amount_is_paid(self):
        assert resolve_installment_status(Decimal('1000'), Decimal('1000')) == InstallmentStatus.PAID

    def test_overpayment_is_paid(self):
        assert resolve_installment_status(Decimal('1200'), Decimal('1000')) == InstallmentStatus.PAID

    def test_some_amount_is_partial(self):
        assert resolve_installment_status(Decimal('0.01'), Decimal('1000')) == InstallmentStatus.PARTIAL

    def test_nothing_is_pending(self):
        assert resolve_installment_status(Decimal('0'), Decimal('1000')) == InstallmentStatus.PENDING


class TestRecordInstallmentPayment:
    """Test applying a payment to one installment"""

    def test_on_time_full_payment(self):
        installment = make_installment()
        updated = record_installment_payment(
            installment, Decimal('1000.00'), date(2024, 1, 1), payment_method="bank_transfer"
        )

        assert updated.status == InstallmentStatus.PAID
        assert updated.days_late == 0
        assert updated.late_fee == Decimal('0')
        assert updated.actual_amount == Decimal('1000.00')
        assert updated.paid_date == date(2024, 1, 1)
        assert updated.payment_method == "bank_transfer"

    def test_late_payment_fee_on_scheduled_amount(self):
        """Fee uses the scheduled amount, not what was actually paid"""
        installment = make_installment()
        updated = record_installment_payment(installment, Decimal('400.00'), date(2024, 2, 15))

        assert updated.status == InstallmentStatus.PARTIAL
        assert updated.days_late == 45
        assert updated.late_fee == Decimal('30.00')

    def test_payment_details_recorded(self):
        updated = record_installment_payment(
            make_installment(), "1000", date(2023, 12, 20),
            payment_method="check",
            payment_reference="CHQ-0042",
            receipt_reference="receipts/0042.pdf",
            notes="Handed over at the plant",
            paid_by="treasury@example.com"
        )

        assert updated.payment_reference == "CHQ-0042"
        assert updated.receipt_reference == "receipts/0042.pdf"
        assert updated.notes == "Handed over at the plant"
        assert updated.paid_by == "treasury@example.com"

    def test_original_installment_untouched(self):
        installment = make_installment()
        record_installment_payment(installment, Decimal('1000.00'), date(2024, 1, 1))
        assert installment.status == InstallmentStatus.PENDING
        assert installment.actual_amount == Decimal('0')

    def test_schedule_fields_untouched(self):
        installment = make_installment()
        updated = record_installment_payment(installment, Decimal('10.00'), date(2024, 1, 1))
        assert updated.scheduled_amount == installment.scheduled_amount
        assert updated.principal_portion == installment.principal_portion
        assert updated.due_date == installment.due_date
        assert updated.payment_number == installment.payment_number

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="negative"):
            record_installment_payment(make_installment(), Decimal('-1'), date(2024, 1, 1))

    def test_non_numeric_amount_rejected(self):
        with pytest.raises(ValidationError):
            record_installment_payment(make_installment(), "a lot", date(2024, 1, 1))

    def test_zero_amount_leaves_pending(self):
        updated = record_installment_payment(make_installment(), Decimal('0'), date(2024, 1, 5))
        assert updated.status == InstallmentStatus.PENDING
        assert updated.days_late == 4

    def test_rerecording_is_idempotent(self):
        """Recording the same payment twice gives the same result"""
        installment = make_installment()
        first = record_installment_payment(installment, Decimal('1000.00'), date(2024, 1, 20))
        second = record_installment_payment(first, Decimal('1000.00'), date(2024, 1, 20))

        for field in ("actual_amount", "status", "days_late", "late_fee", "paid_date"):
            assert getattr(first, field) == getattr(second, field)

    def test_correction_recomputes_everything(self):
        installment = make_installment()
        first = record_installment_payment(installment, Decimal('1000.00'), date(2024, 2, 15))
        corrected = record_installment_payment(first, Decimal('1000.00'), date(2024, 1, 1))

        assert corrected.days_late == 0
        assert corrected.late_fee == Decimal('0')


class TestLoanClosure:
    """Test the all-installments-paid check"""

    def test_all_paid_closes(self):
        installments = [make_installment(n, status=InstallmentStatus.PAID) for n in (1, 2, 3)]
        assert is_loan_paid_off(installments)

    def test_any_unpaid_keeps_open(self):
        installments = [
            make_installment(1, status=InstallmentStatus.PAID),
            make_installment(2, status=InstallmentStatus.PARTIAL),
            make_installment(3, status=InstallmentStatus.PAID),
        ]
        assert not is_loan_paid_off(installments)

    def test_skipped_keeps_open(self):
        installments = [
            make_installment(1, status=InstallmentStatus.PAID),
            make_installment(2, status=InstallmentStatus.SKIPPED),
        ]
        assert not is_loan_paid_off(installments)

    def test_no_installments_never_closes(self):
        assert not is_loan_paid_off([])

    def test_merge_substitutes_by_id(self):
        installments = [make_installment(n) for n in (1, 2)]
        updated = make_installment(2, status=InstallmentStatus.PAID)
        merged = merge_installment(installments, updated)
        assert [item.status for item in merged] == [InstallmentStatus.PENDING, InstallmentStatus.PAID]

    def test_active_loan_becomes_paid_off(self):
        installments = [make_installment(n, status=InstallmentStatus.PAID) for n in (1, 2, 3)]
        assert resolve_loan_status(make_loan(), installments) == LoanStatus.PAID_OFF

    def test_paid_off_loan_reopens_after_correction(self):
        installments = [
            make_installment(1, status=InstallmentStatus.PAID),
            make_installment(2, status=InstallmentStatus.PARTIAL),
        ]
        assert resolve_loan_status(make_loan(LoanStatus.PAID_OFF), installments) == LoanStatus.ACTIVE

    @pytest.mark.parametrize("status", [LoanStatus.DEFAULTED, LoanStatus.CANCELLED])
    def test_closed_statuses_never_change(self, status):
        installments = [make_installment(n, status=InstallmentStatus.PAID) for n in (1, 2, 3)]
        assert resolve_loan_status(make_loan(status), installments) == status


class TestApplyPayment:
    """Test payment plus closure evaluation together"""

    def test_last_payment_closes_loan(self):
        installments = [
            make_installment(1, status=InstallmentStatus.PAID),
            make_installment(2, status=InstallmentStatus.PAID),
            make_installment(3),
        ]
        outcome = apply_payment(make_loan(), installments, installments[2],
                                Decimal('1000.00'), date(2024, 1, 1))

        assert outcome.installment.status == InstallmentStatus.PAID
        assert outcome.loan_status == LoanStatus.PAID_OFF
        assert outcome.loan_paid_off

    def test_partial_last_payment_keeps_loan_active(self):
        installments = [
            make_installment(1, status=InstallmentStatus.PAID),
            make_installment(2, status=InstallmentStatus.PAID),
            make_installment(3),
        ]
        outcome = apply_payment(make_loan(), installments, installments[2],
                                Decimal('999.99'), date(2024, 1, 1))

        assert outcome.installment.status == InstallmentStatus.PARTIAL
        assert outcome.loan_status == LoanStatus.ACTIVE
        assert not outcome.loan_paid_off

    def test_out_of_order_payment_closes_loan(self):
        """The first installment paid last still triggers closure"""
        installments = [
            make_installment(1),
            make_installment(2, status=InstallmentStatus.PAID),
            make_installment(3, status=InstallmentStatus.PAID),
        ]
        outcome = apply_payment(make_loan(), installments, installments[0],
                                Decimal('1000.00'), date(2024, 1, 1))
        assert outcome.loan_paid_off

    def test_reopen_flagged(self):
        installments = [make_installment(1, status=InstallmentStatus.PAID)]
        outcome = apply_payment(make_loan(LoanStatus.PAID_OFF, term=1), installments, installments[0],
                                Decimal('10.00'), date(2024, 1, 1))
        assert outcome.loan_reopened
        assert not outcome.loan_paid_off
