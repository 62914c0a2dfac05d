"""
Shared fixtures for the ledger test suite
"""

import pytest
from datetime import date
from decimal import Decimal

from associate_ledger.associates import AssociateManager
from associate_ledger.config import LedgerConfig
from associate_ledger.ledger import LoanLedger
from associate_ledger.loans import LoanDirection
from associate_ledger.storage import InMemoryStorage


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def config():
    return LedgerConfig(_env_file=None)


@pytest.fixture
def associate_manager(storage):
    return AssociateManager(storage)


@pytest.fixture
def ledger(storage, associate_manager, config):
    return LoanLedger(storage, associate_manager, config)


@pytest.fixture
def associate(associate_manager):
    return associate_manager.create_associate(
        name="Karim Benali",
        relationship="shareholder",
        email="karim@example.com"
    )


@pytest.fixture
def interest_free_loan(ledger, associate):
    """3000 over 3 months at 0%, installments of exactly 1000"""
    return ledger.create_loan(
        associate_id=associate.id,
        direction=LoanDirection.TO_COMPANY,
        principal_amount=Decimal('3000.00'),
        annual_interest_rate=Decimal('0'),
        term_months=3,
        start_date=date(2024, 1, 15)
    )
