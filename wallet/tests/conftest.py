"""
Shared fixtures for the wallet tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from wallet.config import LedgerSettings
from wallet.models import Account, AdminActor, AdminRole, Pool
from wallet.service import WalletService


ADMIN_ID = UUID("aaaaaaaa-0000-0000-0000-000000000001")


class FixedClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(clock) -> WalletService:
    return WalletService(settings=LedgerSettings(), clock=clock)


@pytest.fixture
def admin() -> AdminActor:
    return AdminActor(id=ADMIN_ID, username="ops", role=AdminRole.ADMIN)


@pytest.fixture
def account(service) -> Account:
    return service.open_account("alice")


@pytest.fixture
def fund(service):
    """Seed pools through the ledger so the journal matches the account."""
    def _fund(account_id: UUID, balance: str = "0", commission: str = "0") -> Account:
        if Decimal(balance) > 0:
            service.ledger.credit(account_id, Decimal(balance), Pool.BALANCE)
        if Decimal(commission) > 0:
            service.ledger.credit(account_id, Decimal(commission), Pool.COMMISSION)
        return service.get_account(account_id)
    return _fund
