from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from wallet.config import LedgerSettings
from wallet.errors import LevelTooLow
from wallet.models import Account, LevelInfo, LevelOverview, TaskCompletion, TaskStatus


def commission_rate(level: int, settings: LedgerSettings) -> Decimal:
    rate = settings.commission_rates.get(level)
    if rate is None:
        raise LevelTooLow(f"Unknown level {level}")
    return rate


def ensure_level(account: Account, level: int, settings: LedgerSettings) -> None:
    if level not in settings.commission_rates:
        raise LevelTooLow(f"Unknown level {level}")
    if account.level < level:
        raise LevelTooLow(f"Level {level} requires an upgrade from level {account.level}")


def meets_requirements(account: Account, level: int, settings: LedgerSettings) -> bool:
    deposited, tasks = settings.level_requirements[level]
    return account.deposited_total >= deposited and account.tasks_completed_count >= tasks


def level_info(account: Account, settings: LedgerSettings) -> LevelOverview:
    levels = []
    for level in settings.levels:
        deposited, tasks = settings.level_requirements[level]
        levels.append(LevelInfo(
            level=level,
            commission_rate=settings.commission_rates[level],
            required_deposited=deposited,
            required_tasks=tasks,
            is_unlocked=account.level >= level,
            can_unlock=level > account.level and meets_requirements(account, level, settings),
        ))
    return LevelOverview(
        account_id=account.id,
        current_level=account.level,
        deposited_total=account.deposited_total,
        tasks_completed_count=account.tasks_completed_count,
        levels=levels,
    )


def next_available_at(
    completions: Iterable[TaskCompletion],
    now: datetime,
    settings: LedgerSettings,
) -> Optional[datetime]:
    """When the cooldown on a (platform, level) slot ends, or None if it is free."""
    window = timedelta(hours=settings.task_cooldown_hours)
    recent = [
        c.completed_at for c in completions
        if c.status == TaskStatus.COMPLETED and c.completed_at >= now - window
    ]
    if not recent:
        return None
    return max(recent) + window
