"""
Policy Package

Pure business rules consumed by the wallet workflows: deposit and withdraw
limits, withdraw eligibility, the level / commission-rate table and admin
role capabilities.
"""

from .levels import commission_rate, level_info
from .limits import check_withdraw_eligibility
from .permissions import has_capability, require_capability

__all__ = [
    "commission_rate",
    "level_info",
    "check_withdraw_eligibility",
    "has_capability",
    "require_capability",
]
