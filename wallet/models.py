from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Pool(str, Enum):
    BALANCE = "balance"
    COMMISSION = "commission"


class EntryType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    REFUND = "REFUND"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"
    PENDING = "pending"


class DepositStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WithdrawStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Platform(str, Enum):
    SHOPEE = "shopee"
    LAZADA = "lazada"
    TIKI = "tiki"
    TAOBAO = "taobao"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    QR_CODE = "qr_code"
    CARD = "card"
    WALLET = "wallet"


class AdminRole(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MODERATOR = "moderator"
    SUPPORT = "support"


class Capability(str, Enum):
    USERS = "users"
    DEPOSITS = "deposits"
    WITHDRAWS = "withdraws"
    NOTIFICATIONS = "notifications"
    BOTS = "bots"
    SETTINGS = "settings"


class Account(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    username: str
    balance: Decimal = Field(default=Decimal("0"), ge=0)
    commission: Decimal = Field(default=Decimal("0"), ge=0)
    deposited_total: Decimal = Field(default=Decimal("0"), ge=0)
    tasks_completed_count: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1, le=5)
    status: AccountStatus = AccountStatus.ACTIVE
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    @computed_field
    @property
    def total_balance(self) -> Decimal:
        return self.balance + self.commission

    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


class BankDetails(BaseModel):
    bank_name: str
    account_number: str
    account_holder: str
    branch: Optional[str] = None


class AdminActor(BaseModel):
    id: UUID
    username: str = "admin"
    role: AdminRole = AdminRole.ADMIN
    is_active: bool = True


class DepositRequest(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    status: DepositStatus = DepositStatus.PENDING
    qr_code_url: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[UUID] = None
    rejection_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def is_pending(self) -> bool:
        return self.status == DepositStatus.PENDING


class WithdrawRequest(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    amount: Decimal
    bank: BankDetails
    status: WithdrawStatus = WithdrawStatus.PENDING
    held_amount: Decimal = Decimal("0")
    external_txn_id: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    processed_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[UUID] = None
    rejection_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def can_approve(self) -> bool:
        return self.status == WithdrawStatus.PENDING

    def can_complete(self) -> bool:
        return self.status == WithdrawStatus.PROCESSING

    def can_reject(self) -> bool:
        return self.status in (WithdrawStatus.PENDING, WithdrawStatus.PROCESSING)

    def can_cancel(self) -> bool:
        return self.status == WithdrawStatus.PENDING


class TaskCompletion(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    platform: Platform
    level: int = Field(ge=1, le=5)
    commission_awarded: Decimal
    status: TaskStatus = TaskStatus.COMPLETED
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class LedgerEntry(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    entry_type: EntryType
    pool: Optional[Pool] = None
    amount: Decimal
    balance_after: Decimal
    commission_after: Decimal
    reference_id: Optional[UUID] = None
    description: str
    created_at: datetime
    metadata: dict = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True, frozen=True)


# Request bodies

class OpenAccountPayload(BaseModel):
    username: str
    level: int = Field(default=1, ge=1, le=5)


class CreateDepositPayload(BaseModel):
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER

    model_config = ConfigDict(json_schema_extra={
        "example": {"amount": 200000, "payment_method": "qr_code"}
    })


class CreateWithdrawPayload(BaseModel):
    amount: Decimal
    bank: BankDetails

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "amount": 150000,
            "bank": {
                "bank_name": "VIB",
                "account_number": "0123456789",
                "account_holder": "NGUYEN VAN A",
            },
        }
    })


class RejectPayload(BaseModel):
    reason: Optional[str] = Field(default=None, description="Reason shown to the account owner")


class CompleteWithdrawPayload(BaseModel):
    external_txn_id: str


class CompleteTaskPayload(BaseModel):
    platform: Platform
    level: int


# Responses

class WithdrawEligibility(BaseModel):
    eligible: bool
    reasons: list[str] = Field(default_factory=list)
    total_balance: Decimal
    deposited_total: Decimal
    min_deposit_required: Decimal
    min_withdraw_amount: Decimal
    max_withdraw_amount: Decimal


class LevelInfo(BaseModel):
    level: int
    commission_rate: Decimal
    required_deposited: Decimal
    required_tasks: int
    is_unlocked: bool
    can_unlock: bool


class LevelOverview(BaseModel):
    account_id: UUID
    current_level: int
    deposited_total: Decimal
    tasks_completed_count: int
    levels: list[LevelInfo]


class PlatformTask(BaseModel):
    platform: Platform
    level: int
    commission_rate: Decimal
    is_available: bool
    next_available: Optional[datetime] = None


class TaskResult(BaseModel):
    task: TaskCompletion
    account: Account


class StatusBucket(BaseModel):
    amount: Decimal = Decimal("0")
    count: int = 0


class RequestStats(BaseModel):
    total: StatusBucket
    pending: StatusBucket
    completed: StatusBucket


class LedgerHistoryResponse(BaseModel):
    account_id: UUID
    entries: list[LedgerEntry]
    total_count: int
    balance: Decimal
    commission: Decimal
    total_balance: Decimal
