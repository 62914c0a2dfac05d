"""
Reporting endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from .system import LedgerSystem, get_ledger_system
from .schemas import summary_to_response


router = APIRouter()


@router.get("/portfolio-summary")
async def get_portfolio_summary(
    as_of: Optional[date] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Portfolio dashboard figures"""
    summary = system.loan_ledger.get_portfolio_summary(as_of=as_of)
    return summary_to_response(summary)
