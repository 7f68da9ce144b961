import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Union
from uuid import UUID

from policy.levels import level_info
from policy.limits import check_withdraw_eligibility
from policy.permissions import require_capability

from .config import LedgerSettings
from .deposits import DepositWorkflow
from .errors import LevelTooLow, NotFound
from .ledger import AccountLedger, utc_now
from .models import (
    Account,
    AccountStatus,
    AdminActor,
    Capability,
    DepositRequest,
    DepositStatus,
    LedgerHistoryResponse,
    LevelOverview,
    RequestStats,
    StatusBucket,
    TaskCompletion,
    WithdrawEligibility,
    WithdrawRequest,
    WithdrawStatus,
)
from .storage import InMemoryStorage
from .tasks import TaskWorkflow
from .withdrawals import WithdrawWorkflow

logger = logging.getLogger(__name__)


def _stats(records: Iterable[Union[DepositRequest, WithdrawRequest]]) -> RequestStats:
    stats = RequestStats(total=StatusBucket(), pending=StatusBucket(), completed=StatusBucket())
    for record in records:
        buckets = [stats.total]
        if record.status.value == "pending":
            buckets.append(stats.pending)
        elif record.status.value == "completed":
            buckets.append(stats.completed)
        for bucket in buckets:
            bucket.amount += record.amount
            bucket.count += 1
    return stats


class WalletService:
    def __init__(
        self,
        storage: Optional[InMemoryStorage] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage or InMemoryStorage()
        self.settings = settings or LedgerSettings()
        self.clock = clock or utc_now
        self.ledger = AccountLedger(self.storage, self.clock)
        self.deposits = DepositWorkflow(self.storage, self.ledger, self.settings, self.clock)
        self.withdraws = WithdrawWorkflow(self.storage, self.ledger, self.settings, self.clock)
        self.tasks = TaskWorkflow(self.storage, self.ledger, self.settings, self.clock)

    def open_account(self, username: str, level: int = 1) -> Account:
        if level not in self.settings.levels:
            raise LevelTooLow(f"Unknown level {level}")
        now = self.clock()
        account = self.storage.add_account(
            Account(username=username, level=level, created_at=now, updated_at=now)
        )
        logger.info("Opened account %s for %s", account.id, username)
        return account

    def get_account(self, account_id: UUID) -> Account:
        return self.storage.get_account(account_id)

    def set_account_level(self, account_id: UUID, level: int, admin: AdminActor) -> Account:
        require_capability(admin, Capability.USERS)
        if level not in self.settings.levels:
            raise LevelTooLow(f"Unknown level {level}")
        with self.storage.transaction(account_id) as uow:
            uow.account.level = level
            uow.account.updated_at = self.clock()
        logger.info("Admin %s set account %s to level %s", admin.username, account_id, level)
        return uow.account

    def set_account_status(self, account_id: UUID, status: AccountStatus, admin: AdminActor) -> Account:
        require_capability(admin, Capability.USERS)
        with self.storage.transaction(account_id) as uow:
            uow.account.status = status
            uow.account.updated_at = self.clock()
        logger.info("Admin %s set account %s status to %s", admin.username, account_id, status.value)
        return uow.account

    def check_withdraw_eligibility(self, account_id: UUID) -> WithdrawEligibility:
        return check_withdraw_eligibility(self.get_account(account_id), self.settings)

    def level_info(self, account_id: UUID) -> LevelOverview:
        return level_info(self.get_account(account_id), self.settings)

    def get_deposit(self, deposit_id: UUID, account_id: Optional[UUID] = None) -> DepositRequest:
        deposit = self.storage.get_deposit(deposit_id)
        self._ensure_visible(deposit.account_id, account_id, f"Deposit {deposit_id}")
        return deposit

    def get_withdraw(self, withdraw_id: UUID, account_id: Optional[UUID] = None) -> WithdrawRequest:
        withdraw = self.storage.get_withdraw(withdraw_id)
        self._ensure_visible(withdraw.account_id, account_id, f"Withdraw {withdraw_id}")
        return withdraw

    def list_deposits(
        self, account_id: UUID, status: Optional[DepositStatus] = None, limit: int = 20, offset: int = 0
    ) -> list[DepositRequest]:
        self.storage.get_account(account_id)
        return self.storage.deposits_for(account_id, status)[offset:offset + limit]

    def list_withdraws(
        self, account_id: UUID, status: Optional[WithdrawStatus] = None, limit: int = 20, offset: int = 0
    ) -> list[WithdrawRequest]:
        self.storage.get_account(account_id)
        return self.storage.withdraws_for(account_id, status)[offset:offset + limit]

    def list_tasks(self, account_id: UUID, limit: int = 20, offset: int = 0) -> list[TaskCompletion]:
        self.storage.get_account(account_id)
        return self.storage.tasks_for(account_id)[offset:offset + limit]

    def deposit_stats(self, account_id: UUID) -> RequestStats:
        self.storage.get_account(account_id)
        return _stats(self.storage.deposits_for(account_id))

    def withdraw_stats(self, account_id: UUID) -> RequestStats:
        self.storage.get_account(account_id)
        return _stats(self.storage.withdraws_for(account_id))

    def get_ledger_history(self, account_id: UUID, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        account = self.storage.get_account(account_id)
        all_entries = self.storage.entries_for(account_id)
        return LedgerHistoryResponse(
            account_id=account_id,
            entries=all_entries[offset:offset + limit],
            total_count=len(all_entries),
            balance=account.balance,
            commission=account.commission,
            total_balance=account.total_balance,
        )

    def _ensure_visible(self, owner_id: UUID, account_id: Optional[UUID], label: str) -> None:
        # Another account's record reads as missing.
        if account_id is not None and owner_id != account_id:
            raise NotFound(f"{label} not found")
