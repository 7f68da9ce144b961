"""
In-memory account store.

Each account has its own re-entrant lock. ``transaction(account_id)`` holds
that lock for the whole block and hands out a ``UnitOfWork`` working on a
private copy of the account; the copy and every record staged on the unit of
work are published together when the block exits cleanly, and discarded when
it raises.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

from .errors import ConcurrencyConflict, NotFound
from .models import (
    Account,
    DepositRequest,
    LedgerEntry,
    Platform,
    TaskCompletion,
    WithdrawRequest,
)

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, storage: "InMemoryStorage", account: Account):
        self.storage = storage
        self.account = account
        self.base_version = account.version
        self.deposits: dict[UUID, DepositRequest] = {}
        self.withdraws: dict[UUID, WithdrawRequest] = {}
        self.tasks: dict[UUID, TaskCompletion] = {}
        self.entries: list[LedgerEntry] = []

    def deposit(self, deposit_id: UUID) -> DepositRequest:
        if deposit_id in self.deposits:
            return self.deposits[deposit_id]
        record = self.storage.deposits.get(deposit_id)
        if record is None or record.account_id != self.account.id:
            raise NotFound(f"Deposit {deposit_id} not found")
        self.deposits[deposit_id] = record.model_copy(deep=True)
        return self.deposits[deposit_id]

    def withdraw(self, withdraw_id: UUID) -> WithdrawRequest:
        if withdraw_id in self.withdraws:
            return self.withdraws[withdraw_id]
        record = self.storage.withdraws.get(withdraw_id)
        if record is None or record.account_id != self.account.id:
            raise NotFound(f"Withdraw {withdraw_id} not found")
        self.withdraws[withdraw_id] = record.model_copy(deep=True)
        return self.withdraws[withdraw_id]

    def put_deposit(self, deposit: DepositRequest) -> None:
        self.deposits[deposit.id] = deposit

    def put_withdraw(self, withdraw: WithdrawRequest) -> None:
        self.withdraws[withdraw.id] = withdraw

    def add_task(self, task: TaskCompletion) -> None:
        self.tasks[task.id] = task

    def add_entry(self, entry: LedgerEntry) -> None:
        self.entries.append(entry)

    def tasks_for(self, platform: Platform, level: int) -> list[TaskCompletion]:
        committed = [
            t for t in self.storage.tasks.values()
            if t.account_id == self.account.id and t.platform == platform and t.level == level
        ]
        staged = [t for t in self.tasks.values() if t.platform == platform and t.level == level]
        return committed + staged


class InMemoryStorage:
    def __init__(self):
        self.accounts: dict[UUID, Account] = {}
        self.deposits: dict[UUID, DepositRequest] = {}
        self.withdraws: dict[UUID, WithdrawRequest] = {}
        self.tasks: dict[UUID, TaskCompletion] = {}
        self.ledger_entries: dict[UUID, LedgerEntry] = {}
        self._locks: dict[UUID, threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._local = threading.local()

    def lock_for(self, account_id: UUID) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.RLock()
            return lock

    def _open_units(self) -> dict[UUID, UnitOfWork]:
        units = getattr(self._local, "units", None)
        if units is None:
            units = self._local.units = {}
        return units

    @contextmanager
    def transaction(self, account_id: UUID) -> Iterator[UnitOfWork]:
        units = self._open_units()
        if account_id in units:
            # Nested call on the same thread joins the outer unit of work.
            yield units[account_id]
            return

        with self.lock_for(account_id):
            account = self.accounts.get(account_id)
            if account is None:
                raise NotFound(f"Account {account_id} not found")
            uow = UnitOfWork(self, account.model_copy(deep=True))
            units[account_id] = uow
            try:
                yield uow
                self._commit(uow)
            finally:
                del units[account_id]

    def _commit(self, uow: UnitOfWork) -> None:
        self.save_account(uow.account, expected_version=uow.base_version)
        for deposit in uow.deposits.values():
            self.deposits[deposit.id] = deposit.model_copy(deep=True)
        for withdraw in uow.withdraws.values():
            self.withdraws[withdraw.id] = withdraw.model_copy(deep=True)
        self.tasks.update(uow.tasks)
        for entry in uow.entries:
            self.ledger_entries[entry.id] = entry
        logger.debug(
            "Committed account %s at version %s (%d entries)",
            uow.account.id, uow.account.version, len(uow.entries),
        )

    def add_account(self, account: Account) -> Account:
        with self.lock_for(account.id):
            if account.id in self.accounts:
                raise ConcurrencyConflict(f"Account {account.id} already exists")
            self.accounts[account.id] = account.model_copy(deep=True)
        return account

    def save_account(self, account: Account, expected_version: int) -> Account:
        with self.lock_for(account.id):
            current = self.accounts.get(account.id)
            if current is None:
                raise NotFound(f"Account {account.id} not found")
            if current.version != expected_version:
                raise ConcurrencyConflict(
                    f"Account {account.id} changed: expected version {expected_version}, found {current.version}"
                )
            account.version = expected_version + 1
            self.accounts[account.id] = account.model_copy(deep=True)
        return account

    def get_account(self, account_id: UUID) -> Account:
        with self.lock_for(account_id):
            account = self.accounts.get(account_id)
            if account is None:
                raise NotFound(f"Account {account_id} not found")
            return account.model_copy(deep=True)

    def owner_of_deposit(self, deposit_id: UUID) -> UUID:
        record = self.deposits.get(deposit_id)
        if record is None:
            raise NotFound(f"Deposit {deposit_id} not found")
        return record.account_id

    def owner_of_withdraw(self, withdraw_id: UUID) -> UUID:
        record = self.withdraws.get(withdraw_id)
        if record is None:
            raise NotFound(f"Withdraw {withdraw_id} not found")
        return record.account_id

    def get_deposit(self, deposit_id: UUID) -> DepositRequest:
        with self.lock_for(self.owner_of_deposit(deposit_id)):
            return self.deposits[deposit_id].model_copy(deep=True)

    def get_withdraw(self, withdraw_id: UUID) -> WithdrawRequest:
        with self.lock_for(self.owner_of_withdraw(withdraw_id)):
            return self.withdraws[withdraw_id].model_copy(deep=True)

    def deposits_for(self, account_id: UUID, status: Optional[str] = None) -> list[DepositRequest]:
        with self.lock_for(account_id):
            records = [
                d.model_copy(deep=True) for d in self.deposits.values()
                if d.account_id == account_id and (status is None or d.status == status)
            ]
        records.sort(key=lambda d: d.created_at, reverse=True)
        return records

    def withdraws_for(self, account_id: UUID, status: Optional[str] = None) -> list[WithdrawRequest]:
        with self.lock_for(account_id):
            records = [
                w.model_copy(deep=True) for w in self.withdraws.values()
                if w.account_id == account_id and (status is None or w.status == status)
            ]
        records.sort(key=lambda w: w.created_at, reverse=True)
        return records

    def tasks_for(self, account_id: UUID) -> list[TaskCompletion]:
        with self.lock_for(account_id):
            records = [t for t in self.tasks.values() if t.account_id == account_id]
        records.sort(key=lambda t: t.completed_at, reverse=True)
        return records

    def entries_for(self, account_id: UUID) -> list[LedgerEntry]:
        with self.lock_for(account_id):
            records = [e for e in self.ledger_entries.values() if e.account_id == account_id]
        records.sort(key=lambda e: e.created_at, reverse=True)
        return records
