"""
Ledger system container and request dependencies
"""

from typing import Optional

from fastapi import HTTPException, status

from ..associates import AssociateManager
from ..config import get_config
from ..exceptions import (
    DuplicateLoanNumberError, InvalidLoanStateError, LedgerError, NotFoundError
)
from ..ledger import LoanLedger
from ..storage import InMemoryStorage, SQLiteStorage, StorageInterface


class LedgerSystem:
    """Associate loan ledger with all components initialized"""

    def __init__(self, storage: Optional[StorageInterface] = None):
        if storage is None:
            storage = SQLiteStorage(get_config().sqlite_path)
        self.storage = storage
        self.associate_manager = AssociateManager(self.storage)
        self.loan_ledger = LoanLedger(self.storage, self.associate_manager)

    @classmethod
    def in_memory(cls) -> 'LedgerSystem':
        return cls(InMemoryStorage())


# Created on first request so importing the API opens no database
_ledger_system: Optional[LedgerSystem] = None


def get_ledger_system() -> LedgerSystem:
    global _ledger_system
    if _ledger_system is None:
        _ledger_system = LedgerSystem()
    return _ledger_system


def to_http_error(error: LedgerError) -> HTTPException:
    """Map ledger errors onto HTTP status codes"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (DuplicateLoanNumberError, InvalidLoanStateError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
