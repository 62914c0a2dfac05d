"""
Loan endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status

from .system import LedgerSystem, get_ledger_system, to_http_error
from .schemas import (
    CreateLoanRequest, LoanStatusRequest,
    installment_to_response, loan_to_response, progress_to_response
)
from ..amortization import calculate_monthly_payment, generate_schedule, schedule_totals
from ..exceptions import LedgerError, ValidationError
from ..loans import LoanStatus


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a loan and its repayment schedule"""
    try:
        loan = system.loan_ledger.create_loan(**request.model_dump())
    except LedgerError as e:
        raise to_http_error(e)

    return {
        "loan_id": loan.id,
        "loan_number": loan.loan_number,
        "monthly_payment": str(loan.monthly_payment),
        "status": loan.status.value,
        "message": f"Loan {loan.loan_number} created with {loan.term_months} installments"
    }


@router.get("")
async def list_loans(
    associate_id: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List loans, newest first"""
    try:
        loan_status = LoanStatus(status_filter) if status_filter else None
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown loan status: {status_filter}")

    loans = system.loan_ledger.list_loans(associate_id=associate_id, status=loan_status)
    return {"loans": [loan_to_response(loan) for loan in loans]}


@router.get("/preview")
async def preview_schedule(
    principal_amount: str,
    term_months: int,
    annual_interest_rate: str = "0",
    start_date: Optional[date] = None
):
    """Compute payment and schedule for prospective terms without saving anything"""
    try:
        schedule = generate_schedule(
            principal_amount, annual_interest_rate, term_months, start_date or date.today()
        )
        monthly_payment = calculate_monthly_payment(principal_amount, annual_interest_rate, term_months)
    except (LedgerError, ValueError) as e:
        raise to_http_error(e if isinstance(e, LedgerError) else ValidationError(str(e)))

    totals = schedule_totals(schedule)
    return {
        "monthly_payment": str(monthly_payment),
        "total_interest": str(totals["interest"]),
        "total_amount": str(totals["amount"]),
        "schedule": [
            {
                "payment_number": row.payment_number,
                "due_date": row.due_date.isoformat(),
                "principal_portion": str(row.principal_portion),
                "interest_portion": str(row.interest_portion),
                "scheduled_amount": str(row.scheduled_amount),
                "balance_after": str(row.balance_after)
            }
            for row in schedule
        ]
    }


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get loan details"""
    loan = system.loan_ledger.get_loan(loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan_to_response(loan)


@router.get("/{loan_id}/installments")
async def get_loan_installments(
    loan_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Installments of a loan ordered by payment number"""
    try:
        installments = system.loan_ledger.get_loan_installments(loan_id)
    except LedgerError as e:
        raise to_http_error(e)
    return {"installments": [installment_to_response(item) for item in installments]}


@router.get("/{loan_id}/progress")
async def get_loan_progress(
    loan_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Repayment progress of a loan"""
    try:
        progress = system.loan_ledger.get_loan_progress(loan_id)
    except LedgerError as e:
        raise to_http_error(e)
    return progress_to_response(progress)


@router.post("/{loan_id}/default")
async def mark_loan_defaulted(
    loan_id: str,
    request: LoanStatusRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Mark an active loan as defaulted"""
    try:
        loan = system.loan_ledger.mark_defaulted(loan_id, notes=request.notes)
    except LedgerError as e:
        raise to_http_error(e)
    return loan_to_response(loan)


@router.post("/{loan_id}/cancel")
async def cancel_loan(
    loan_id: str,
    request: LoanStatusRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Cancel an active loan"""
    try:
        loan = system.loan_ledger.cancel_loan(loan_id, notes=request.notes)
    except LedgerError as e:
        raise to_http_error(e)
    return loan_to_response(loan)
