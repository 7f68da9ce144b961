import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from urllib.parse import urlencode
from uuid import UUID

from policy.limits import validate_deposit_amount
from policy.permissions import require_capability

from .config import LedgerSettings
from .errors import InvalidState, MissingReason, Unauthorized
from .ledger import AccountLedger, to_amount, utc_now
from .models import (
    AdminActor,
    Capability,
    DepositRequest,
    DepositStatus,
    PaymentMethod,
    Pool,
)
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


def qr_code_url(amount: Decimal, settings: LedgerSettings) -> str:
    params = urlencode({
        "bank": settings.qr_bank,
        "acc": settings.qr_account,
        "template": settings.qr_template,
        "amount": str(amount),
        "des": "nap tien tai khoan",
    })
    return f"{settings.qr_base_url}?{params}"


class DepositWorkflow:
    """pending -> completed | failed | cancelled, all terminal."""

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

    def create(
        self,
        account_id: UUID,
        amount: Decimal,
        payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
    ) -> DepositRequest:
        amount = to_amount(amount)
        validate_deposit_amount(amount, self.settings)
        with self.storage.transaction(account_id) as uow:
            deposit = DepositRequest(
                account_id=account_id,
                amount=amount,
                payment_method=payment_method,
                created_at=self.clock(),
            )
            if payment_method == PaymentMethod.QR_CODE:
                deposit.qr_code_url = qr_code_url(amount, self.settings)
            uow.put_deposit(deposit)
        logger.info("Deposit %s created for account %s, amount: %s", deposit.id, account_id, amount)
        return deposit

    def approve(self, request_id: UUID, approver: AdminActor) -> DepositRequest:
        require_capability(approver, Capability.DEPOSITS)
        account_id = self.storage.owner_of_deposit(request_id)
        with self.storage.transaction(account_id) as uow:
            deposit = uow.deposit(request_id)
            self._ensure_pending(deposit, "approve")
            deposit.status = DepositStatus.COMPLETED
            deposit.approved_at = self.clock()
            deposit.approved_by = approver.id
            self.ledger.credit(
                account_id, deposit.amount, Pool.BALANCE,
                reference_id=deposit.id, description=f"Deposit {deposit.id} approved",
            )
        logger.info("Admin %s approved deposit %s for account %s", approver.username, request_id, account_id)
        return deposit

    def reject(self, request_id: UUID, approver: AdminActor, reason: Optional[str]) -> DepositRequest:
        require_capability(approver, Capability.DEPOSITS)
        if not reason or not reason.strip():
            raise MissingReason("A rejection reason is required")
        account_id = self.storage.owner_of_deposit(request_id)
        with self.storage.transaction(account_id) as uow:
            deposit = uow.deposit(request_id)
            self._ensure_pending(deposit, "reject")
            deposit.status = DepositStatus.FAILED
            deposit.rejected_at = self.clock()
            deposit.rejected_by = approver.id
            deposit.rejection_reason = reason.strip()
        logger.info("Admin %s rejected deposit %s", approver.username, request_id)
        return deposit

    def cancel(self, request_id: UUID, account_id: UUID) -> DepositRequest:
        owner_id = self.storage.owner_of_deposit(request_id)
        if owner_id != account_id:
            raise Unauthorized(f"Deposit {request_id} does not belong to account {account_id}")
        with self.storage.transaction(owner_id) as uow:
            deposit = uow.deposit(request_id)
            self._ensure_pending(deposit, "cancel")
            deposit.status = DepositStatus.CANCELLED
            deposit.cancelled_at = self.clock()
        logger.info("Deposit %s cancelled by account %s", request_id, account_id)
        return deposit

    def confirm_payment(self, request_id: UUID, account_id: UUID) -> DepositRequest:
        owner_id = self.storage.owner_of_deposit(request_id)
        if owner_id != account_id:
            raise Unauthorized(f"Deposit {request_id} does not belong to account {account_id}")
        with self.storage.transaction(owner_id) as uow:
            deposit = uow.deposit(request_id)
            self._ensure_pending(deposit, "confirm payment for")
            deposit.note = "Payment confirmed by account owner, awaiting admin review"
        return deposit

    @staticmethod
    def _ensure_pending(deposit: DepositRequest, action: str) -> None:
        if not deposit.is_pending():
            logger.warning("Refusing to %s deposit %s in %s state", action, deposit.id, deposit.status.value)
            raise InvalidState(f"Cannot {action} deposit in {deposit.status.value} state")
