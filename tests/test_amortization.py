"""
Test suite for amortization module

Tests the fixed monthly payment formula, schedule generation, the final
installment settlement step and schedule verification. All schedules must
amortize to exactly zero.
"""

import pytest
from decimal import Decimal
from datetime import date
from dataclasses import replace

from associate_ledger.amortization import (
    ScheduledInstallment, add_months, calculate_monthly_payment,
    generate_schedule, schedule_totals, settle_final_installment, verify_schedule
)
from associate_ledger.exceptions import ScheduleConsistencyError, ValidationError


class TestMonthlyPayment:
    """Test the fixed monthly payment calculation"""

    def test_interest_free_divides_principal(self):
        """Zero rate is principal over term, rounded to cents"""
        assert calculate_monthly_payment(Decimal('1200'), Decimal('0'), 12) == Decimal('100.00')
        assert calculate_monthly_payment(Decimal('1000'), Decimal('0'), 3) == Decimal('333.33')

    def test_interest_free_rounds_half_up(self):
        # 1 / 8 = 0.125 exactly, rounds up
        assert calculate_monthly_payment(Decimal('1'), Decimal('0'), 8) == Decimal('0.13')

    def test_standard_formula(self):
        """120000 at 8% over 12 months"""
        payment = calculate_monthly_payment(Decimal('120000'), Decimal('0.08'), 12)
        assert payment.as_tuple().exponent == -2
        assert Decimal('10438.55') < payment < Decimal('10438.70')

    def test_single_month_term(self):
        """One month: principal plus one month of interest"""
        payment = calculate_monthly_payment(Decimal('1200'), Decimal('0.12'), 1)
        assert payment == Decimal('1212.00')

    def test_deterministic(self):
        """Same inputs always give the same payment"""
        first = calculate_monthly_payment(Decimal('54321.09'), Decimal('0.075'), 36)
        second = calculate_monthly_payment(Decimal('54321.09'), Decimal('0.075'), 36)
        assert first == second

    def test_accepts_string_and_int_inputs(self):
        assert calculate_monthly_payment("1200", 0, 12) == Decimal('100.00')

    @pytest.mark.parametrize("principal,rate,term", [
        (Decimal('0'), Decimal('0.05'), 12),
        (Decimal('-100'), Decimal('0.05'), 12),
        (Decimal('1000'), Decimal('-0.01'), 12),
        (Decimal('1000'), Decimal('0.05'), 0),
        (Decimal('1000'), Decimal('0.05'), -3),
    ])
    def test_invalid_inputs_rejected(self, principal, rate, term):
        with pytest.raises(ValidationError):
            calculate_monthly_payment(principal, rate, term)


class TestAddMonths:
    """Test calendar month arithmetic"""

    def test_same_day_next_month(self):
        assert add_months(date(2024, 1, 15), 1) == date(2024, 2, 15)

    def test_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 1, 31), 3) == date(2024, 4, 30)

    def test_crosses_year_boundary(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 1), 12) == date(2025, 1, 1)


class TestScheduleGeneration:
    """Test equal-installment schedule generation"""

    def test_reference_scenario(self):
        """120000 at 8% over 12 months starting 2024-01-01"""
        principal = Decimal('120000')
        schedule = generate_schedule(principal, Decimal('0.08'), 12, date(2024, 1, 1))
        payment = calculate_monthly_payment(principal, Decimal('0.08'), 12)

        assert len(schedule) == 12
        first = schedule[0]
        assert first.payment_number == 1
        assert first.due_date == date(2024, 2, 1)
        assert first.interest_portion == Decimal('800.00')
        assert first.principal_portion == payment - Decimal('800.00')
        assert first.scheduled_amount == payment
        assert first.balance_after == principal - first.principal_portion

        last = schedule[-1]
        assert last.payment_number == 12
        assert last.due_date == date(2025, 1, 1)
        assert last.balance_after == Decimal('0.00')

    def test_principal_portions_sum_to_principal(self):
        principal = Decimal('120000')
        schedule = generate_schedule(principal, Decimal('0.08'), 12, date(2024, 1, 1))
        total = sum(row.principal_portion for row in schedule)
        assert total == principal

    @pytest.mark.parametrize("principal,rate,term", [
        (Decimal('10000.00'), Decimal('0.075'), 60),
        (Decimal('999.99'), Decimal('0.19'), 7),
        (Decimal('50000'), Decimal('0.035'), 48),
        (Decimal('0.05'), Decimal('0'), 12),
        (Decimal('250000'), Decimal('0.12'), 1),
    ])
    def test_every_schedule_fully_amortizes(self, principal, rate, term):
        schedule = generate_schedule(principal, rate, term, date(2024, 3, 31))

        assert [row.payment_number for row in schedule] == list(range(1, term + 1))
        assert schedule[-1].balance_after == Decimal('0.00')
        drift = abs(sum(row.principal_portion for row in schedule) - principal)
        assert drift <= Decimal('0.01') * term
        for row in schedule:
            assert row.principal_portion + row.interest_portion == row.scheduled_amount

    def test_interest_free_schedule(self):
        """Zero rate: no interest and a constant amount except the last row"""
        schedule = generate_schedule(Decimal('1000'), Decimal('0'), 3, date(2024, 1, 1))

        assert all(row.interest_portion == Decimal('0') for row in schedule)
        assert [row.scheduled_amount for row in schedule] == [
            Decimal('333.33'), Decimal('333.33'), Decimal('333.34')
        ]
        assert [row.balance_after for row in schedule] == [
            Decimal('666.67'), Decimal('333.34'), Decimal('0.00')
        ]

    def test_interest_declines_over_time(self):
        schedule = generate_schedule(Decimal('24000'), Decimal('0.10'), 24, date(2024, 1, 1))
        interest = [row.interest_portion for row in schedule]
        assert interest == sorted(interest, reverse=True)

    def test_due_dates_clamp_from_start_date(self):
        """Each due date is computed from the start, not chained"""
        schedule = generate_schedule(Decimal('300'), Decimal('0'), 3, date(2024, 1, 31))
        assert [row.due_date for row in schedule] == [
            date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)
        ]

    def test_fresh_computation_each_call(self):
        args = (Decimal('7500'), Decimal('0.06'), 9, date(2024, 6, 1))
        assert generate_schedule(*args) == generate_schedule(*args)

    def test_totals(self):
        schedule = generate_schedule(Decimal('1000'), Decimal('0'), 3, date(2024, 1, 1))
        totals = schedule_totals(schedule)
        assert totals["principal"] == Decimal('1000.00')
        assert totals["interest"] == Decimal('0')
        assert totals["amount"] == Decimal('1000.00')


class TestFinalInstallmentSettlement:
    """Test the rounding residual step in isolation"""

    def test_residual_added_to_principal(self):
        row = ScheduledInstallment(
            payment_number=3,
            due_date=date(2024, 4, 1),
            principal_portion=Decimal('333.33'),
            interest_portion=Decimal('0.00'),
            scheduled_amount=Decimal('333.33'),
            balance_after=Decimal('0.01')
        )
        settled = settle_final_installment(row, Decimal('333.34'))

        assert settled.principal_portion == Decimal('333.34')
        assert settled.scheduled_amount == Decimal('333.34')
        assert settled.balance_after == Decimal('0.00')
        assert settled.payment_number == 3
        assert settled.due_date == date(2024, 4, 1)

    def test_interest_kept_and_amount_recomputed(self):
        row = ScheduledInstallment(
            payment_number=12,
            due_date=date(2025, 1, 1),
            principal_portion=Decimal('10369.45'),
            interest_portion=Decimal('69.16'),
            scheduled_amount=Decimal('10438.61'),
            balance_after=Decimal('0.00')
        )
        settled = settle_final_installment(row, Decimal('10369.41'))

        assert settled.interest_portion == Decimal('69.16')
        assert settled.principal_portion == Decimal('10369.41')
        assert settled.scheduled_amount == Decimal('10438.57')

    def test_inconsistent_row_rejected(self):
        with pytest.raises(ScheduleConsistencyError, match="does not equal"):
            ScheduledInstallment(
                payment_number=1,
                due_date=date(2024, 2, 1),
                principal_portion=Decimal('150.00'),
                interest_portion=Decimal('60.00'),
                scheduled_amount=Decimal('200.00'),
                balance_after=Decimal('850.00')
            )


class TestScheduleVerification:
    """Test schedule invariant checks"""

    def test_valid_schedule_passes(self):
        schedule = generate_schedule(Decimal('5000'), Decimal('0.09'), 18, date(2024, 1, 1))
        verify_schedule(schedule, Decimal('5000'))

    def test_nonzero_final_balance_fails(self):
        schedule = generate_schedule(Decimal('1000'), Decimal('0'), 3, date(2024, 1, 1))
        broken = schedule[:-1] + [replace(schedule[-1], balance_after=Decimal('0.01'))]
        with pytest.raises(ScheduleConsistencyError, match="Final balance"):
            verify_schedule(broken, Decimal('1000'))

    def test_gap_in_numbering_fails(self):
        schedule = generate_schedule(Decimal('1000'), Decimal('0'), 3, date(2024, 1, 1))
        with pytest.raises(ScheduleConsistencyError, match="contiguous"):
            verify_schedule([schedule[0], schedule[2]], Decimal('1000'))

    def test_principal_drift_fails(self):
        schedule = generate_schedule(Decimal('1000'), Decimal('0'), 3, date(2024, 1, 1))
        with pytest.raises(ScheduleConsistencyError, match="drift"):
            verify_schedule(schedule, Decimal('1000.50'))

    def test_empty_schedule_fails(self):
        with pytest.raises(ScheduleConsistencyError):
            verify_schedule([], Decimal('1000'))
