"""
Account ledger: the only code that changes ``balance`` and ``commission``.

Outgoing amounts are taken commission-first. Refunds use the same preference
against the pools as they stand at refund time: up to the current commission
goes back to commission and the rest spills into balance.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from uuid import UUID

from .errors import AmountOutOfRange, InsufficientFunds
from .models import Account, EntryType, LedgerEntry, Pool
from .storage import InMemoryStorage, UnitOfWork

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def split_debit(account: Account, amount: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(from_commission, from_balance)`` for a commission-first debit."""
    if amount > account.total_balance:
        raise InsufficientFunds(
            f"Cannot debit {amount}: available {account.total_balance}"
        )
    if amount <= account.commission:
        return amount, ZERO
    return account.commission, amount - account.commission


def split_refund(account: Account, amount: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(to_commission, to_balance)`` for a commission-first refund."""
    to_commission = min(amount, account.commission)
    return to_commission, amount - to_commission


def to_amount(value) -> Decimal:
    """Coerce ints, floats and strings to ``Decimal`` via their text form."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise AmountOutOfRange(f"Invalid amount {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise AmountOutOfRange(f"Invalid amount {value!r}") from None


def _require_positive(amount) -> Decimal:
    amount = to_amount(amount)
    if not amount.is_finite() or amount <= ZERO:
        raise AmountOutOfRange(f"Amount must be positive, got {amount}")
    return amount


class AccountLedger:
    def __init__(self, storage: InMemoryStorage, clock: Optional[Callable[[], datetime]] = None):
        self.storage = storage
        self.clock = clock or utc_now

    def credit(
        self,
        account_id: UUID,
        amount: Decimal,
        pool: Pool,
        reference_id: Optional[UUID] = None,
        description: Optional[str] = None,
    ) -> Account:
        amount = _require_positive(amount)
        with self.storage.transaction(account_id) as uow:
            account = uow.account
            if pool == Pool.BALANCE:
                account.balance += amount
                account.deposited_total += amount
            else:
                account.commission += amount
            self._record(
                uow, EntryType.CREDIT, amount, pool, reference_id,
                description or f"Credit {amount} to {pool.value}",
            )
        logger.info("Credited %s to %s of account %s", amount, pool.value, account_id)
        return account

    def debit(
        self,
        account_id: UUID,
        amount: Decimal,
        reference_id: Optional[UUID] = None,
        description: Optional[str] = None,
    ) -> Account:
        amount = _require_positive(amount)
        with self.storage.transaction(account_id) as uow:
            account = uow.account
            from_commission, from_balance = split_debit(account, amount)
            account.commission -= from_commission
            account.balance -= from_balance
            self._record(
                uow, EntryType.DEBIT, amount, self._pool_of(from_commission, from_balance),
                reference_id, description or f"Debit {amount}",
                {"from_commission": str(from_commission), "from_balance": str(from_balance)},
            )
        logger.info(
            "Debited %s from account %s (commission %s, balance %s)",
            amount, account_id, from_commission, from_balance,
        )
        return account

    def refund(
        self,
        account_id: UUID,
        amount: Decimal,
        reference_id: Optional[UUID] = None,
        description: Optional[str] = None,
    ) -> Account:
        amount = _require_positive(amount)
        with self.storage.transaction(account_id) as uow:
            account = uow.account
            to_commission, to_balance = split_refund(account, amount)
            account.commission += to_commission
            account.balance += to_balance
            self._record(
                uow, EntryType.REFUND, amount, self._pool_of(to_commission, to_balance),
                reference_id, description or f"Refund {amount}",
                {"to_commission": str(to_commission), "to_balance": str(to_balance)},
            )
        logger.info(
            "Refunded %s to account %s (commission %s, balance %s)",
            amount, account_id, to_commission, to_balance,
        )
        return account

    def total_balance(self, account_id: UUID) -> Decimal:
        return self.storage.get_account(account_id).total_balance

    @staticmethod
    def _pool_of(commission_part: Decimal, balance_part: Decimal) -> Optional[Pool]:
        if balance_part == ZERO:
            return Pool.COMMISSION
        if commission_part == ZERO:
            return Pool.BALANCE
        return None

    def _record(
        self,
        uow: UnitOfWork,
        entry_type: EntryType,
        amount: Decimal,
        pool: Optional[Pool],
        reference_id: Optional[UUID],
        description: str,
        metadata: Optional[dict] = None,
    ) -> None:
        uow.add_entry(LedgerEntry(
            account_id=uow.account.id,
            entry_type=entry_type,
            pool=pool,
            amount=amount,
            balance_after=uow.account.balance,
            commission_after=uow.account.commission,
            reference_id=reference_id,
            description=description,
            created_at=self.clock(),
            metadata=metadata or {},
        ))
