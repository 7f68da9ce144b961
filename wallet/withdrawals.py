"""
Withdraw workflow.

    pending -> processing -> completed
    pending | processing -> failed      (refunds the amount)
    pending -> cancelled

With ``hold_withdraw_funds`` on, ``create`` debits the amount commission-first
in the same unit of work that records the request, so pending requests can
never add up to more than the account holds; ``cancel`` and ``reject`` give it
back. With the setting off, nothing is debited at any point and only
``reject`` touches the ledger.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from policy.limits import check_withdraw_preconditions
from policy.permissions import require_capability

from .config import LedgerSettings
from .errors import InvalidState, MissingReason, Unauthorized
from .ledger import AccountLedger, to_amount, utc_now
from .models import (
    AdminActor,
    BankDetails,
    Capability,
    WithdrawRequest,
    WithdrawStatus,
)
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class WithdrawWorkflow:
    def __init__(
        self,
        storage: InMemoryStorage,
        ledger: AccountLedger,
        settings: LedgerSettings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.ledger = ledger
        self.settings = settings
        self.clock = clock or utc_now

    def create(self, account_id: UUID, amount: Decimal, bank: BankDetails) -> WithdrawRequest:
        amount = to_amount(amount)
        with self.storage.transaction(account_id) as uow:
            account = uow.account
            if not account.is_active():
                raise Unauthorized(f"Account {account_id} is {account.status.value}")
            check_withdraw_preconditions(account, amount, self.settings)

            withdraw = WithdrawRequest(
                account_id=account_id,
                amount=amount,
                bank=bank,
                created_at=self.clock(),
            )
            if self.settings.hold_withdraw_funds:
                self.ledger.debit(
                    account_id, amount,
                    reference_id=withdraw.id, description=f"Hold for withdraw {withdraw.id}",
                )
                withdraw.held_amount = amount
            uow.put_withdraw(withdraw)
        logger.info("Withdraw %s created for account %s, amount: %s", withdraw.id, account_id, amount)
        return withdraw

    def approve(self, request_id: UUID, approver: AdminActor) -> WithdrawRequest:
        require_capability(approver, Capability.WITHDRAWS)
        account_id = self.storage.owner_of_withdraw(request_id)
        with self.storage.transaction(account_id) as uow:
            withdraw = uow.withdraw(request_id)
            self._ensure(withdraw.can_approve(), withdraw, "approve")
            withdraw.status = WithdrawStatus.PROCESSING
            withdraw.approved_at = self.clock()
            withdraw.approved_by = approver.id
        logger.info("Admin %s approved withdraw %s for processing", approver.username, request_id)
        return withdraw

    def complete(self, request_id: UUID, approver: AdminActor, external_txn_id: str) -> WithdrawRequest:
        require_capability(approver, Capability.WITHDRAWS)
        account_id = self.storage.owner_of_withdraw(request_id)
        with self.storage.transaction(account_id) as uow:
            withdraw = uow.withdraw(request_id)
            self._ensure(withdraw.can_complete(), withdraw, "complete")
            withdraw.status = WithdrawStatus.COMPLETED
            withdraw.completed_at = self.clock()
            withdraw.processed_by = approver.id
            withdraw.external_txn_id = external_txn_id
        logger.info("Admin %s completed withdraw %s (txn %s)", approver.username, request_id, external_txn_id)
        return withdraw

    def reject(self, request_id: UUID, approver: AdminActor, reason: Optional[str]) -> WithdrawRequest:
        require_capability(approver, Capability.WITHDRAWS)
        if not reason or not reason.strip():
            raise MissingReason("A rejection reason is required")
        account_id = self.storage.owner_of_withdraw(request_id)
        with self.storage.transaction(account_id) as uow:
            withdraw = uow.withdraw(request_id)
            self._ensure(withdraw.can_reject(), withdraw, "reject")
            self.ledger.refund(
                account_id, withdraw.amount,
                reference_id=withdraw.id, description=f"Withdraw {withdraw.id} rejected",
            )
            withdraw.status = WithdrawStatus.FAILED
            withdraw.rejected_at = self.clock()
            withdraw.rejected_by = approver.id
            withdraw.rejection_reason = reason.strip()
            withdraw.held_amount = Decimal("0")
        logger.info("Admin %s rejected withdraw %s, refunded %s", approver.username, request_id, withdraw.amount)
        return withdraw

    def cancel(self, request_id: UUID, account_id: UUID) -> WithdrawRequest:
        owner_id = self.storage.owner_of_withdraw(request_id)
        if owner_id != account_id:
            raise Unauthorized(f"Withdraw {request_id} does not belong to account {account_id}")
        with self.storage.transaction(owner_id) as uow:
            withdraw = uow.withdraw(request_id)
            self._ensure(withdraw.can_cancel(), withdraw, "cancel")
            if withdraw.held_amount > 0:
                self.ledger.refund(
                    owner_id, withdraw.held_amount,
                    reference_id=withdraw.id, description=f"Withdraw {withdraw.id} cancelled",
                )
                withdraw.held_amount = Decimal("0")
            withdraw.status = WithdrawStatus.CANCELLED
            withdraw.cancelled_at = self.clock()
        logger.info("Withdraw %s cancelled by account %s", request_id, account_id)
        return withdraw

    @staticmethod
    def _ensure(allowed: bool, withdraw: WithdrawRequest, action: str) -> None:
        if not allowed:
            logger.warning("Refusing to %s withdraw %s in %s state", action, withdraw.id, withdraw.status.value)
            raise InvalidState(f"Cannot {action} withdraw in {withdraw.status.value} state")
