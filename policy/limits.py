"""
Deposit and withdraw limits.

Pure functions over an ``Account`` and the injected ``LedgerSettings``; the
``validate_*``/``ensure_*`` helpers raise the typed errors the workflows
surface, ``check_withdraw_eligibility`` reports without raising.
"""

from decimal import Decimal

from wallet.config import LedgerSettings
from wallet.errors import (
    AmountOutOfRange,
    AmountTooLow,
    DepositThresholdNotMet,
    InsufficientFunds,
)
from wallet.models import Account, WithdrawEligibility


def validate_deposit_amount(amount: Decimal, settings: LedgerSettings) -> None:
    if amount < settings.min_deposit:
        raise AmountTooLow(f"Minimum deposit amount is {settings.min_deposit} {settings.currency}")


def ensure_deposit_threshold(account: Account, settings: LedgerSettings) -> None:
    if account.deposited_total < settings.min_deposit_for_withdraw:
        raise DepositThresholdNotMet(
            f"Deposit at least {settings.min_deposit_for_withdraw} {settings.currency} before withdrawing"
        )


def validate_withdraw_amount(amount: Decimal, settings: LedgerSettings) -> None:
    if amount < settings.min_withdraw or amount > settings.max_withdraw:
        raise AmountOutOfRange(
            f"Withdraw amount must be between {settings.min_withdraw} and {settings.max_withdraw} {settings.currency}"
        )


def ensure_affordable(account: Account, amount: Decimal) -> None:
    if account.total_balance < amount:
        raise InsufficientFunds(
            f"Insufficient balance: requested {amount}, available {account.total_balance}"
        )


def check_withdraw_preconditions(account: Account, amount: Decimal, settings: LedgerSettings) -> None:
    ensure_deposit_threshold(account, settings)
    validate_withdraw_amount(amount, settings)
    ensure_affordable(account, amount)


def check_withdraw_eligibility(account: Account, settings: LedgerSettings) -> WithdrawEligibility:
    total_balance = account.total_balance
    reasons = []
    if account.deposited_total < settings.min_deposit_for_withdraw:
        reasons.append(f"Deposit at least {settings.min_deposit_for_withdraw} {settings.currency}")
    if total_balance < settings.min_withdraw:
        reasons.append(f"Minimum balance to withdraw is {settings.min_withdraw} {settings.currency}")

    return WithdrawEligibility(
        eligible=not reasons,
        reasons=reasons,
        total_balance=total_balance,
        deposited_total=account.deposited_total,
        min_deposit_required=settings.min_deposit_for_withdraw,
        min_withdraw_amount=settings.min_withdraw,
        max_withdraw_amount=min(settings.max_withdraw, total_balance),
    )
