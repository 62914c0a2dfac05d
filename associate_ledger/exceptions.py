"""Exception hierarchy for the associate loan ledger."""


class LedgerError(ValueError):
    """Base exception for all ledger errors."""


class ValidationError(LedgerError):
    """Raised when input is rejected before any computation or write."""


class NotFoundError(LedgerError):
    """Raised when a referenced record does not exist."""


class AssociateNotFoundError(NotFoundError):
    """Raised when an associate id is unknown."""


class LoanNotFoundError(NotFoundError):
    """Raised when a loan id is unknown."""


class InstallmentNotFoundError(NotFoundError):
    """Raised when an installment id is unknown."""


class DuplicateLoanNumberError(LedgerError):
    """Raised when a loan number is already in use."""


class InvalidLoanStateError(LedgerError):
    """Raised when a loan is in the wrong status for the operation."""


class ScheduleConsistencyError(LedgerError):
    """Raised when a generated schedule breaks its own invariants."""
