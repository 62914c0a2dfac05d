"""
Associate endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, status

from .system import LedgerSystem, get_ledger_system, to_http_error
from .schemas import (
    CreateAssociateRequest, UpdateAssociateRequest,
    associate_to_response, balance_to_response, loan_to_response
)
from ..exceptions import LedgerError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_associate(
    request: CreateAssociateRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Register a new associate"""
    try:
        associate = system.associate_manager.create_associate(**request.model_dump())
    except LedgerError as e:
        raise to_http_error(e)

    return {
        "associate_id": associate.id,
        "message": "Associate created successfully"
    }


@router.get("")
async def list_associates(
    include_inactive: bool = False,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List associates ordered by name"""
    associates = system.associate_manager.list_associates(active_only=not include_inactive)
    return {"associates": [associate_to_response(a) for a in associates]}


@router.get("/{associate_id}")
async def get_associate(
    associate_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get associate details"""
    associate = system.associate_manager.get_associate(associate_id)
    if not associate:
        raise HTTPException(status_code=404, detail="Associate not found")
    return associate_to_response(associate)


@router.patch("/{associate_id}")
async def update_associate(
    associate_id: str,
    request: UpdateAssociateRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Update associate contact details"""
    try:
        associate = system.associate_manager.update_associate(
            associate_id, **request.model_dump(exclude_unset=True)
        )
    except LedgerError as e:
        raise to_http_error(e)
    return associate_to_response(associate)


@router.post("/{associate_id}/deactivate")
async def deactivate_associate(
    associate_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Soft-deactivate an associate"""
    try:
        associate = system.associate_manager.deactivate_associate(associate_id)
    except LedgerError as e:
        raise to_http_error(e)
    return associate_to_response(associate)


@router.get("/{associate_id}/balance")
async def get_associate_balance(
    associate_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Net exposure between the company and the associate"""
    try:
        balance = system.loan_ledger.get_associate_balance(associate_id)
    except LedgerError as e:
        raise to_http_error(e)
    return balance_to_response(balance)


@router.get("/{associate_id}/loans")
async def get_associate_loans(
    associate_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """All loans of an associate, newest first"""
    try:
        system.associate_manager.require_associate(associate_id)
    except LedgerError as e:
        raise to_http_error(e)
    loans = system.loan_ledger.list_loans(associate_id=associate_id)
    return {"loans": [loan_to_response(loan) for loan in loans]}
