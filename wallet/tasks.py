import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from policy.levels import commission_rate, ensure_level, next_available_at

from .config import LedgerSettings
from .errors import CooldownActive
from .ledger import AccountLedger, utc_now
from .models import Platform, PlatformTask, Pool, TaskCompletion, TaskResult
from .storage import InMemoryStorage

logger = logging.getLogger(__name__)


class TaskWorkflow:
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

    def complete_task(self, account_id: UUID, platform: Platform, level: int) -> TaskResult:
        platform = Platform(platform)
        with self.storage.transaction(account_id) as uow:
            account = uow.account
            ensure_level(account, level, self.settings)

            now = self.clock()
            next_available = next_available_at(uow.tasks_for(platform, level), now, self.settings)
            if next_available is not None:
                logger.warning(
                    "Account %s hit the %s level %s cooldown until %s",
                    account_id, platform.value, level, next_available.isoformat(),
                )
                raise CooldownActive(
                    f"Task {platform.value} level {level} available again at {next_available.isoformat()}",
                    next_available=next_available,
                )

            rate = commission_rate(level, self.settings)
            task = TaskCompletion(
                account_id=account_id,
                platform=platform,
                level=level,
                commission_awarded=rate,
                completed_at=now,
            )
            uow.add_task(task)
            self.ledger.credit(
                account_id, rate, Pool.COMMISSION,
                reference_id=task.id, description=f"Commission for {platform.value} level {level} task",
            )
            account.tasks_completed_count += 1
        logger.info("Account %s completed %s task at level %s", account_id, platform.value, level)
        return TaskResult(task=task, account=account)

    def platform_tasks(self, account_id: UUID, platform: Platform) -> list[PlatformTask]:
        platform = Platform(platform)
        account = self.storage.get_account(account_id)
        completions = [t for t in self.storage.tasks_for(account_id) if t.platform == platform]
        now = self.clock()
        tasks = []
        for level in self.settings.levels:
            tasks.append(PlatformTask(
                platform=platform,
                level=level,
                commission_rate=self.settings.commission_rates[level],
                is_available=account.level >= level,
                next_available=next_available_at(
                    [c for c in completions if c.level == level], now, self.settings
                ),
            ))
        return tasks
