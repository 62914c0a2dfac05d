"""
Pydantic schemas for API requests and responses
"""

from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..associates import Associate
from ..balances import AssociateBalance, LoanProgress, PortfolioSummary
from ..loans import Installment, Loan


# Associate schemas
class CreateAssociateRequest(BaseModel):
    name: str
    relationship: str = Field(..., description="e.g. owner, partner, shareholder, family, director")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    notes: Optional[str] = None


class UpdateAssociateRequest(BaseModel):
    name: Optional[str] = None
    relationship: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    notes: Optional[str] = None


# Loan schemas
class CreateLoanRequest(BaseModel):
    associate_id: str
    direction: str = Field(..., description="to_company or from_company")
    principal_amount: str = Field(..., description="Decimal amount as string")
    annual_interest_rate: str = Field("0", description="Annual rate as a fraction, e.g. 0.08")
    term_months: int
    start_date: date
    loan_number: Optional[str] = None
    contract_reference: Optional[str] = None
    board_decision_reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None


class LoanStatusRequest(BaseModel):
    notes: Optional[str] = None


class RecordPaymentRequest(BaseModel):
    actual_amount: str = Field(..., description="Decimal amount as string")
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, description="bank_transfer, check, cash")
    payment_reference: Optional[str] = None
    receipt_reference: Optional[str] = None
    notes: Optional[str] = None
    paid_by: Optional[str] = None


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def associate_to_response(associate: Associate) -> Dict[str, Any]:
    return {
        "id": associate.id,
        "name": associate.name,
        "relationship": associate.relationship,
        "email": associate.email,
        "phone": associate.phone,
        "address": associate.address,
        "tax_id": associate.tax_id,
        "notes": associate.notes,
        "is_active": associate.is_active
    }


def loan_to_response(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "loan_number": loan.loan_number,
        "associate_id": loan.associate_id,
        "direction": loan.direction.value,
        "principal_amount": str(loan.principal_amount),
        "annual_interest_rate": str(loan.annual_interest_rate),
        "term_months": loan.term_months,
        "monthly_payment": str(loan.monthly_payment),
        "total_interest": str(loan.total_interest),
        "total_amount": str(loan.total_amount),
        "start_date": _iso(loan.start_date),
        "end_date": _iso(loan.end_date),
        "status": loan.status.value,
        "contract_reference": loan.contract_reference,
        "board_decision_reference": loan.board_decision_reference,
        "notes": loan.notes,
        "created_by": loan.created_by
    }


def installment_to_response(installment: Installment) -> Dict[str, Any]:
    return {
        "id": installment.id,
        "loan_id": installment.loan_id,
        "payment_number": installment.payment_number,
        "due_date": _iso(installment.due_date),
        "principal_portion": str(installment.principal_portion),
        "interest_portion": str(installment.interest_portion),
        "scheduled_amount": str(installment.scheduled_amount),
        "actual_amount": str(installment.actual_amount),
        "balance_after": str(installment.balance_after),
        "status": installment.status.value,
        "paid_date": _iso(installment.paid_date),
        "paid_by": installment.paid_by,
        "payment_method": installment.payment_method,
        "payment_reference": installment.payment_reference,
        "receipt_reference": installment.receipt_reference,
        "notes": installment.notes,
        "days_late": installment.days_late,
        "late_fee": str(installment.late_fee)
    }


def balance_to_response(balance: AssociateBalance) -> Dict[str, Any]:
    return {
        "associate_id": balance.associate_id,
        "company_owes_associate": str(balance.company_owes_associate),
        "associate_owes_company": str(balance.associate_owes_company),
        "net": str(balance.net),
        "overpaid_loan_ids": balance.overpaid_loan_ids,
        "loans": [
            {
                "loan_id": item.loan_id,
                "loan_number": item.loan_number,
                "direction": item.direction.value,
                "principal_amount": str(item.principal_amount),
                "paid_to_date": str(item.paid_to_date),
                "outstanding": str(item.outstanding)
            }
            for item in balance.loans
        ]
    }


def progress_to_response(progress: LoanProgress) -> Dict[str, Any]:
    return {
        "loan_id": progress.loan_id,
        "paid_installments": progress.paid_installments,
        "term_months": progress.term_months,
        "percent_complete": str(progress.percent_complete),
        "total_paid": str(progress.total_paid),
        "outstanding": str(progress.outstanding),
        "total_late_fees": str(progress.total_late_fees),
        "overdue_installments": progress.overdue_installments
    }


def summary_to_response(summary: PortfolioSummary) -> Dict[str, Any]:
    return {
        "total_loans": summary.total_loans,
        "active_loans": summary.active_loans,
        "total_principal": str(summary.total_principal),
        "total_outstanding": str(summary.total_outstanding),
        "total_paid_this_month": str(summary.total_paid_this_month),
        "overdue_payments": summary.overdue_payments,
        "upcoming_payments": summary.upcoming_payments,
        "loans_to_company": summary.loans_to_company,
        "loans_from_company": summary.loans_from_company,
        "to_company_balance": str(summary.to_company_balance),
        "from_company_balance": str(summary.from_company_balance)
    }
