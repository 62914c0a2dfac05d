"""
Loan Ledger Module

Orchestrates loan creation, payment recording and the read queries over the
record store. The ledger keeps no state of its own: every call reads the rows
it needs, and multi-row writes run inside ``storage.atomic()`` so a loan and
its schedule, or a payment and the loan closure it triggers, become visible
together or not at all.
"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional
import logging
import uuid

from .amortization import calculate_monthly_payment, add_months, generate_schedule, verify_schedule
from .associates import AssociateManager
from .balances import (
    AssociateBalance, LoanProgress, PortfolioSummary,
    associate_balance, loan_progress, portfolio_summary, upcoming_window
)
from .config import LedgerConfig, get_config
from .exceptions import (
    DuplicateLoanNumberError, InstallmentNotFoundError, InvalidLoanStateError,
    LoanNotFoundError, ValidationError
)
from .loans import (
    Installment, InstallmentStatus, Loan, LoanStatus, LoanTerms,
    parse_amount, parse_direction
)
from .logging_config import log_action
from .money import Numeric, ZERO, round_money
from .payments import PaymentOutcome, apply_payment
from .storage import StorageInterface

logger = logging.getLogger("associate_ledger.ledger")


class LoanLedger:
    """
    Manages associate loans from creation through payoff
    """

    def __init__(
        self,
        storage: StorageInterface,
        associate_manager: Optional[AssociateManager] = None,
        config: Optional[LedgerConfig] = None
    ):
        self.storage = storage
        self.associate_manager = associate_manager or AssociateManager(storage)
        self.config = config or get_config()

        self.loans_table = "loans"
        self.installments_table = "loan_installments"

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_loan(
        self,
        associate_id: str,
        direction,
        principal_amount: Numeric,
        annual_interest_rate: Numeric,
        term_months: int,
        start_date: date,
        loan_number: Optional[str] = None,
        contract_reference: Optional[str] = None,
        board_decision_reference: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> Loan:
        """
        Create a loan together with its full repayment schedule

        Args:
            associate_id: Counterparty of the loan
            direction: LoanDirection or "to_company" / "from_company"
            principal_amount: Amount lent, positive
            annual_interest_rate: Annual rate as a fraction, 0 for interest-free
            term_months: Number of monthly installments, at least 1
            start_date: First installment falls due one month later
            loan_number: Caller-supplied unique number; generated when omitted
            contract_reference: Reference to the signed contract
            board_decision_reference: Reference to the approving decision
            notes: Free-form notes
            created_by: Name of the person creating the loan

        Returns:
            Created Loan object

        Raises:
            ValidationError: If the terms are invalid or the associate is inactive
            AssociateNotFoundError: If the associate does not exist
            DuplicateLoanNumberError: If loan_number is already used
        """
        terms = LoanTerms(
            principal_amount=principal_amount,
            annual_interest_rate=annual_interest_rate,
            term_months=term_months,
            start_date=start_date
        )
        direction = parse_direction(direction)

        associate = self.associate_manager.require_associate(associate_id)
        if not associate.is_active:
            raise ValidationError(f"Associate {associate_id} is inactive")

        monthly_payment = calculate_monthly_payment(
            terms.principal_amount, terms.annual_interest_rate, terms.term_months
        )
        schedule = generate_schedule(
            terms.principal_amount, terms.annual_interest_rate, terms.term_months, terms.start_date
        )
        verify_schedule(schedule, terms.principal_amount)

        total_interest = max(ZERO, round_money(monthly_payment * terms.term_months - terms.principal_amount))

        with self.storage.atomic():
            if loan_number:
                if self._find_by_loan_number(loan_number):
                    raise DuplicateLoanNumberError(f"Loan number {loan_number} already exists")
            else:
                loan_number = self.next_loan_number(terms.start_date.year)

            now = datetime.now(timezone.utc)
            loan = Loan(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                loan_number=loan_number,
                associate_id=associate_id,
                direction=direction,
                principal_amount=terms.principal_amount,
                annual_interest_rate=terms.annual_interest_rate,
                term_months=terms.term_months,
                monthly_payment=monthly_payment,
                total_interest=total_interest,
                total_amount=round_money(terms.principal_amount + total_interest),
                start_date=terms.start_date,
                end_date=add_months(terms.start_date, terms.term_months),
                status=LoanStatus.ACTIVE,
                contract_reference=contract_reference,
                board_decision_reference=board_decision_reference,
                notes=notes,
                created_by=created_by
            )
            self._save_loan(loan)

            for row in schedule:
                installment = Installment(
                    id=f"{loan.id}_{row.payment_number}",
                    created_at=now,
                    updated_at=now,
                    loan_id=loan.id,
                    payment_number=row.payment_number,
                    due_date=row.due_date,
                    principal_portion=row.principal_portion,
                    interest_portion=row.interest_portion,
                    scheduled_amount=row.scheduled_amount,
                    balance_after=row.balance_after
                )
                self._save_installment(installment)

        log_action(
            logger, "info", f"Loan {loan.loan_number} created with {loan.term_months} installments",
            user=created_by, action="create_loan", resource=f"loan:{loan.id}",
            extra={
                "associate_id": associate_id,
                "direction": direction.value,
                "principal_amount": str(loan.principal_amount),
                "annual_interest_rate": str(loan.annual_interest_rate),
                "monthly_payment": str(monthly_payment)
            }
        )
        return loan

    def record_payment(
        self,
        installment_id: str,
        actual_amount: Numeric,
        paid_date: Optional[date] = None,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
        receipt_reference: Optional[str] = None,
        notes: Optional[str] = None,
        paid_by: Optional[str] = None
    ) -> PaymentOutcome:
        """
        Record an actual payment against one installment

        The installment update and any resulting loan status change are
        written in one atomic block, and the paid-off check reads every
        installment of the loan inside that block.

        Returns:
            PaymentOutcome with the updated installment and loan status

        Raises:
            ValidationError: If the amount is negative
            InstallmentNotFoundError: If the installment does not exist
            InvalidLoanStateError: If the loan has been cancelled
        """
        amount = parse_amount(actual_amount, "payment amount")
        if amount < ZERO:
            logger.warning("Rejected negative payment %s on installment %s", amount, installment_id)
            raise ValidationError("Payment amount cannot be negative")
        if paid_date is None:
            paid_date = date.today()

        with self.storage.atomic():
            installment = self.get_installment(installment_id)
            if not installment:
                raise InstallmentNotFoundError(f"Installment {installment_id} not found")

            loan = self.require_loan(installment.loan_id)
            if loan.status == LoanStatus.CANCELLED:
                raise InvalidLoanStateError(f"Loan {loan.loan_number} is cancelled")

            outcome = apply_payment(
                loan,
                self._load_installments(loan.id),
                installment,
                amount,
                paid_date,
                payment_method=payment_method or self.config.default_payment_method,
                payment_reference=payment_reference,
                receipt_reference=receipt_reference,
                notes=notes,
                paid_by=paid_by,
                late_fee_rate=self.config.late_fee_rate_decimal,
                late_fee_period_days=self.config.late_fee_period_days
            )
            self._save_installment(outcome.installment)

            if outcome.loan_status != loan.status:
                loan.status = outcome.loan_status
                loan.updated_at = datetime.now(timezone.utc)
                self._save_loan(loan)

        updated = outcome.installment
        log_action(
            logger, "info",
            f"Payment of {updated.actual_amount} recorded on {loan.loan_number} #{updated.payment_number}",
            user=paid_by, action="record_payment", resource=f"installment:{updated.id}",
            extra={
                "status": updated.status.value,
                "days_late": updated.days_late,
                "late_fee": str(updated.late_fee)
            }
        )
        if outcome.loan_paid_off:
            logger.info("Loan %s paid off", loan.loan_number)
        elif outcome.loan_reopened:
            logger.warning("Loan %s reopened after payment correction", loan.loan_number)

        return outcome

    def mark_defaulted(self, loan_id: str, notes: Optional[str] = None) -> Loan:
        """Flag an active loan as defaulted; no write-off entry is made"""
        return self._transition_status(loan_id, LoanStatus.DEFAULTED, notes)

    def cancel_loan(self, loan_id: str, notes: Optional[str] = None) -> Loan:
        """Cancel an active loan"""
        return self._transition_status(loan_id, LoanStatus.CANCELLED, notes)

    def next_loan_number(self, year: int) -> str:
        """Next free loan number for a year, e.g. LOAN-2024-0003"""
        prefix = f"{self.config.loan_number_prefix}-{year}-"
        highest = 0
        for data in self.storage.load_all(self.loans_table):
            number = data.get('loan_number', '')
            if number.startswith(prefix):
                suffix = number[len(prefix):]
                if suffix.isdigit():
                    highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:04d}"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID"""
        data = self.storage.load(self.loans_table, loan_id)
        if data:
            return Loan.from_dict(data)
        return None

    def require_loan(self, loan_id: str) -> Loan:
        loan = self.get_loan(loan_id)
        if not loan:
            raise LoanNotFoundError(f"Loan {loan_id} not found")
        return loan

    def list_loans(self, associate_id: Optional[str] = None,
                   status: Optional[LoanStatus] = None) -> List[Loan]:
        """List loans, newest first"""
        filters: Dict[str, str] = {}
        if associate_id:
            filters['associate_id'] = associate_id
        if status:
            filters['status'] = LoanStatus(status).value
        loans = [Loan.from_dict(data) for data in self.storage.find(self.loans_table, filters)]
        loans.sort(key=lambda loan: (loan.created_at, loan.loan_number), reverse=True)
        return loans

    def get_installment(self, installment_id: str) -> Optional[Installment]:
        """Get installment by ID"""
        data = self.storage.load(self.installments_table, installment_id)
        if data:
            return Installment.from_dict(data)
        return None

    def get_loan_installments(self, loan_id: str) -> List[Installment]:
        """Installments of a loan ordered by payment number"""
        self.require_loan(loan_id)
        return self._load_installments(loan_id)

    def get_overdue_installments(self, as_of: Optional[date] = None) -> List[Installment]:
        """Pending installments of active loans whose due date has passed"""
        as_of = as_of or date.today()
        overdue = [item for item in self._active_loan_installments() if item.is_overdue(as_of)]
        overdue.sort(key=lambda item: (item.due_date, item.payment_number))
        return overdue

    def get_upcoming_installments(self, days: Optional[int] = None,
                                  as_of: Optional[date] = None) -> List[Installment]:
        """Pending installments of active loans falling due within the next ``days`` days"""
        if days is None:
            days = self.config.upcoming_window_days
        if days < 0:
            raise ValidationError("Upcoming window cannot be negative")
        start, end = upcoming_window(as_of or date.today(), days)
        upcoming = [
            item for item in self._active_loan_installments()
            if item.status == InstallmentStatus.PENDING and start <= item.due_date <= end
        ]
        upcoming.sort(key=lambda item: (item.due_date, item.payment_number))
        return upcoming

    def get_associate_balance(self, associate_id: str) -> AssociateBalance:
        """Net exposure between the company and an associate"""
        self.associate_manager.require_associate(associate_id)
        loans = self.list_loans(associate_id=associate_id)
        installments: List[Installment] = []
        for loan in loans:
            installments.extend(self._load_installments(loan.id))
        return associate_balance(associate_id, loans, installments)

    def get_loan_progress(self, loan_id: str, as_of: Optional[date] = None) -> LoanProgress:
        loan = self.require_loan(loan_id)
        return loan_progress(loan, self._load_installments(loan_id), as_of or date.today())

    def get_portfolio_summary(self, as_of: Optional[date] = None) -> PortfolioSummary:
        loans = [Loan.from_dict(data) for data in self.storage.load_all(self.loans_table)]
        return portfolio_summary(loans, self._all_installments(), as_of or date.today())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition_status(self, loan_id: str, status: LoanStatus, notes: Optional[str]) -> Loan:
        with self.storage.atomic():
            loan = self.require_loan(loan_id)
            if loan.status != LoanStatus.ACTIVE:
                raise InvalidLoanStateError(
                    f"Cannot mark loan {loan.loan_number} as {status.value}: it is {loan.status.value}"
                )
            loan.status = status
            if notes:
                loan.notes = f"{loan.notes}\n{notes}" if loan.notes else notes
            loan.updated_at = datetime.now(timezone.utc)
            self._save_loan(loan)

        logger.info("Loan %s marked %s", loan.loan_number, status.value)
        return loan

    def _find_by_loan_number(self, loan_number: str) -> Optional[Loan]:
        found = self.storage.find(self.loans_table, {"loan_number": loan_number})
        return Loan.from_dict(found[0]) if found else None

    def _load_installments(self, loan_id: str) -> List[Installment]:
        records = self.storage.find(self.installments_table, {"loan_id": loan_id})
        installments = [Installment.from_dict(data) for data in records]
        installments.sort(key=lambda item: item.payment_number)
        return installments

    def _all_installments(self) -> List[Installment]:
        return [Installment.from_dict(data) for data in self.storage.load_all(self.installments_table)]

    def _active_loan_installments(self) -> List[Installment]:
        active_ids = {
            data['id'] for data in self.storage.find(self.loans_table, {"status": LoanStatus.ACTIVE})
        }
        return [item for item in self._all_installments() if item.loan_id in active_ids]

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, loan.to_dict())

    def _save_installment(self, installment: Installment) -> None:
        self.storage.save(self.installments_table, installment.id, installment.to_dict())
