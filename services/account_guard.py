"""
Lockout policy for password logins.

Per account the guard is either Unlocked or Locked(until). Lock expiry is
lazy: nothing sweeps expired locks, the gate simply treats a lock whose
`until` has passed as gone and clears it on the spot.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from services.errors import AccountInactive, AccountLocked

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=30)


class AccountGuard:
    def __init__(
        self,
        storage,
        max_failed_attempts: int = MAX_FAILED_ATTEMPTS,
        lockout_duration: timedelta = LOCKOUT_DURATION,
    ):
        self.storage = storage
        self.max_failed_attempts = max_failed_attempts
        self.lockout_duration = lockout_duration

    @staticmethod
    def locked_until(user, now: datetime) -> Optional[datetime]:
        """The lock expiry if the account is Locked at `now`, else None."""
        if user.locked_until is not None and user.locked_until > now:
            return user.locked_until
        return None

    def gate(self, user, now: datetime):
        """Run before the password is even looked at."""
        if self.locked_until(user, now) is not None:
            logger.info("Login rejected for locked account %s", user.id)
            raise AccountLocked()
        if user.locked_until is not None:
            # lock ran out; start counting from zero again
            self.storage.reset_failed_attempts(user.id)

    @staticmethod
    def ensure_active(user):
        if not user.is_active:
            raise AccountInactive()

    def record_failure(self, user, now: datetime) -> bool:
        """Count a bad password; returns True when this failure locked the account."""
        attempts = self.storage.increment_failed_attempts(user.id)
        if attempts >= self.max_failed_attempts:
            self.storage.lock_account(user.id, now + self.lockout_duration)
            logger.warning("Account %s locked after %d failed login attempts", user.id, attempts)
            return True
        return False

    def record_success(self, user):
        if user.failed_login_attempts or user.locked_until is not None:
            self.storage.reset_failed_attempts(user.id)
