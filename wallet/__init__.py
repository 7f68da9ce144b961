"""
Task Rewards Wallet Ledger

This package provides:
- Two pools per account: balance (deposits) and commission (tasks)
- Commission-first debits and refunds with an append-only journal
- Deposit lifecycle: pending → completed / failed / cancelled
- Withdraw lifecycle: pending → processing → completed, failed or cancelled
- Task completion with per-level commission and a 24h cooldown
- Per-account atomic units of work

The workflows and the ``WalletService`` facade live in ``wallet.service``.
"""

from .config import LedgerSettings
from .errors import LedgerServiceError
from .models import (
    Account,
    DepositRequest,
    DepositStatus,
    EntryType,
    LedgerEntry,
    Pool,
    TaskCompletion,
    WithdrawRequest,
    WithdrawStatus,
)

__all__ = [
    "LedgerSettings",
    "LedgerServiceError",
    "Account",
    "DepositRequest",
    "DepositStatus",
    "EntryType",
    "LedgerEntry",
    "Pool",
    "TaskCompletion",
    "WithdrawRequest",
    "WithdrawStatus",
]
