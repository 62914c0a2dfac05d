"""
Installment endpoints
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from .system import LedgerSystem, get_ledger_system, to_http_error
from .schemas import RecordPaymentRequest, installment_to_response
from ..exceptions import LedgerError


router = APIRouter()


@router.get("/overdue")
async def get_overdue_installments(
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Pending installments past their due date"""
    installments = system.loan_ledger.get_overdue_installments()
    return {"installments": [installment_to_response(item) for item in installments]}


@router.get("/upcoming")
async def get_upcoming_installments(
    days: Optional[int] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Pending installments due within the next ``days`` days"""
    try:
        installments = system.loan_ledger.get_upcoming_installments(days=days)
    except LedgerError as e:
        raise to_http_error(e)
    return {"installments": [installment_to_response(item) for item in installments]}


@router.get("/{installment_id}")
async def get_installment(
    installment_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get installment details"""
    installment = system.loan_ledger.get_installment(installment_id)
    if not installment:
        raise HTTPException(status_code=404, detail="Installment not found")
    return installment_to_response(installment)


@router.post("/{installment_id}/payment")
async def record_payment(
    installment_id: str,
    request: RecordPaymentRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Record an actual payment against an installment"""
    try:
        outcome = system.loan_ledger.record_payment(installment_id, **request.model_dump())
    except LedgerError as e:
        raise to_http_error(e)

    return {
        "installment": installment_to_response(outcome.installment),
        "loan_status": outcome.loan_status.value,
        "loan_paid_off": outcome.loan_paid_off,
        "message": "Payment recorded successfully"
    }
