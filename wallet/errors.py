from datetime import datetime
from typing import Optional


class LedgerServiceError(Exception):
    pass


class NotFound(LedgerServiceError):
    pass


class Unauthorized(LedgerServiceError):
    pass


class InvalidState(LedgerServiceError):
    pass


class MissingReason(LedgerServiceError):
    pass


class InsufficientFunds(LedgerServiceError):
    pass


class AmountOutOfRange(LedgerServiceError):
    pass


class AmountTooLow(LedgerServiceError):
    pass


class DepositThresholdNotMet(LedgerServiceError):
    pass


class LevelTooLow(LedgerServiceError):
    pass


class CooldownActive(LedgerServiceError):
    def __init__(self, message: str, next_available: Optional[datetime] = None):
        super().__init__(message)
        self.next_available = next_available


class ConcurrencyConflict(LedgerServiceError):
    pass
