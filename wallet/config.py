"""
Wallet settings.

Every limit, rate and threshold used by the workflows lives on a single
``LedgerSettings`` object that is passed to each workflow constructor.
``LedgerSettings.from_env()`` reads overrides from the environment (and a
``.env`` file when present).
"""

import os
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator


DEFAULT_COMMISSION_RATES: dict[int, Decimal] = {
    1: Decimal("1500"),
    2: Decimal("2200"),
    3: Decimal("3300"),
    4: Decimal("4000"),
    5: Decimal("5500"),
}

# level -> (deposited_total, tasks_completed_count)
DEFAULT_LEVEL_REQUIREMENTS: dict[int, tuple[Decimal, int]] = {
    1: (Decimal("0"), 0),
    2: (Decimal("500000"), 10),
    3: (Decimal("2000000"), 50),
    4: (Decimal("5000000"), 200),
    5: (Decimal("10000000"), 500),
}


class LedgerSettings(BaseModel):
    min_deposit: Decimal = Decimal("50000")
    min_deposit_for_withdraw: Decimal = Decimal("50000")
    min_withdraw: Decimal = Decimal("100000")
    max_withdraw: Decimal = Decimal("5000000")
    task_cooldown_hours: int = Field(default=24, ge=0)
    commission_rates: dict[int, Decimal] = Field(default_factory=lambda: dict(DEFAULT_COMMISSION_RATES))
    level_requirements: dict[int, tuple[Decimal, int]] = Field(
        default_factory=lambda: dict(DEFAULT_LEVEL_REQUIREMENTS)
    )
    hold_withdraw_funds: bool = True
    currency: str = "VND"
    qr_base_url: str = "https://qr.sepay.vn/img"
    qr_bank: str = "VIB"
    qr_account: str = "068394585"
    qr_template: str = "compact"

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_limits(self) -> "LedgerSettings":
        if self.min_withdraw > self.max_withdraw:
            raise ValueError("min_withdraw cannot exceed max_withdraw")
        if set(self.commission_rates) != set(self.level_requirements):
            raise ValueError("commission_rates and level_requirements must cover the same levels")
        return self

    @property
    def levels(self) -> list[int]:
        return sorted(self.commission_rates)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "LedgerSettings":
        load_dotenv(env_file)
        overrides = {}
        for field_name, env_name in (
            ("min_deposit", "WALLET_MIN_DEPOSIT"),
            ("min_deposit_for_withdraw", "WALLET_MIN_DEPOSIT_FOR_WITHDRAW"),
            ("min_withdraw", "WALLET_MIN_WITHDRAW"),
            ("max_withdraw", "WALLET_MAX_WITHDRAW"),
            ("task_cooldown_hours", "WALLET_TASK_COOLDOWN_HOURS"),
            ("hold_withdraw_funds", "WALLET_HOLD_WITHDRAW_FUNDS"),
            ("currency", "WALLET_CURRENCY"),
            ("qr_bank", "QR_BANK"),
            ("qr_account", "QR_ACCOUNT"),
            ("qr_template", "QR_TEMPLATE"),
        ):
            value = os.getenv(env_name)
            if value is not None and value != "":
                overrides[field_name] = value
        return cls(**overrides)
