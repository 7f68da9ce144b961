"""
Unit Tests for Deposit and Withdraw Limits

Tests cover:
1. Minimum deposit
2. Withdraw precondition order
3. Eligibility report and its reasons
"""

from decimal import Decimal

import pytest

from policy.limits import (
    check_withdraw_eligibility,
    check_withdraw_preconditions,
    validate_deposit_amount,
    validate_withdraw_amount,
)
from wallet.config import LedgerSettings
from wallet.errors import (
    AmountOutOfRange,
    AmountTooLow,
    DepositThresholdNotMet,
    InsufficientFunds,
)
from wallet.models import Account


@pytest.fixture
def settings():
    return LedgerSettings()


def make_account(balance="0", commission="0", deposited="0"):
    return Account(
        username="alice",
        balance=Decimal(balance),
        commission=Decimal(commission),
        deposited_total=Decimal(deposited),
    )


class TestDepositLimits:
    """Tests for the deposit minimum."""

    def test_below_minimum(self, settings):
        with pytest.raises(AmountTooLow):
            validate_deposit_amount(Decimal("49999"), settings)

    def test_at_minimum(self, settings):
        validate_deposit_amount(Decimal("50000"), settings)


class TestWithdrawPreconditions:
    """Tests for the ordered withdraw checks."""

    def test_threshold_is_checked_first(self, settings):
        """Test that a missing deposit wins over a bad amount."""
        account = make_account(balance="10")

        with pytest.raises(DepositThresholdNotMet):
            check_withdraw_preconditions(account, Decimal("1"), settings)

    def test_range_before_affordability(self, settings):
        """Test that an out-of-range amount wins over insufficient funds."""
        account = make_account(balance="60000", deposited="60000")

        with pytest.raises(AmountOutOfRange):
            check_withdraw_preconditions(account, Decimal("99999"), settings)

    def test_insufficient_funds(self, settings):
        account = make_account(balance="60000", commission="20000", deposited="60000")

        with pytest.raises(InsufficientFunds):
            check_withdraw_preconditions(account, Decimal("100000"), settings)

    def test_bounds_are_inclusive(self, settings):
        validate_withdraw_amount(Decimal("100000"), settings)
        validate_withdraw_amount(Decimal("5000000"), settings)


class TestWithdrawEligibility:
    """Tests for the eligibility report."""

    def test_empty_account_lists_both_reasons_in_order(self, settings):
        result = check_withdraw_eligibility(make_account(), settings)

        assert result.eligible is False
        assert len(result.reasons) == 2
        assert result.reasons[0].startswith("Deposit at least")
        assert result.reasons[1].startswith("Minimum balance")

    def test_commission_counts_towards_balance_reason(self, settings):
        """Test that the balance check uses balance plus commission."""
        account = make_account(balance="50000", commission="50000", deposited="50000")

        result = check_withdraw_eligibility(account, settings)

        assert result.eligible is True
        assert result.reasons == []
        assert result.total_balance == Decimal("100000")

    def test_max_amount_is_capped_by_holdings(self, settings):
        account = make_account(balance="300000", deposited="300000")

        result = check_withdraw_eligibility(account, settings)

        assert result.max_withdraw_amount == Decimal("300000")
        assert result.min_withdraw_amount == Decimal("100000")

    def test_max_amount_is_capped_by_settings(self, settings):
        account = make_account(balance="9000000", deposited="9000000")

        assert check_withdraw_eligibility(account, settings).max_withdraw_amount == Decimal("5000000")
