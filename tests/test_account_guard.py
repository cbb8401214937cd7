from datetime import timedelta

import pytest

from models.base_model import utcnow
from models.user import User
from services.account_guard import LOCKOUT_DURATION, MAX_FAILED_ATTEMPTS, AccountGuard
from services.errors import AccountInactive, AccountLocked


@pytest.fixture
def user(storage):
    account = User(email="guard@example.com", username="guard", password_hash="x")
    with storage.transaction():
        storage.add_account(account)
    return account


@pytest.fixture
def guard(storage):
    return AccountGuard(storage)


def test_unlocked_account_passes_gate(guard, user):
    guard.gate(user, utcnow())


def test_locks_on_fifth_failure(guard, storage, user):
    now = utcnow()
    for _ in range(MAX_FAILED_ATTEMPTS - 1):
        assert guard.record_failure(user, now) is False
    assert guard.record_failure(user, now) is True
    storage.save()

    assert user.failed_login_attempts == MAX_FAILED_ATTEMPTS
    assert user.locked_until == now + LOCKOUT_DURATION
    with pytest.raises(AccountLocked):
        guard.gate(user, now + timedelta(minutes=29))


def test_expired_lock_resets_counter(guard, storage, user):
    now = utcnow()
    for _ in range(MAX_FAILED_ATTEMPTS):
        guard.record_failure(user, now)
    storage.save()

    later = now + LOCKOUT_DURATION + timedelta(seconds=1)
    assert AccountGuard.locked_until(user, later) is None
    guard.gate(user, later)
    storage.save()
    assert user.failed_login_attempts == 0
    assert user.locked_until is None


def test_success_clears_failures(guard, storage, user):
    now = utcnow()
    guard.record_failure(user, now)
    guard.record_failure(user, now)
    guard.record_success(user)
    storage.save()
    assert user.failed_login_attempts == 0


def test_inactive_account_rejected(user):
    user.is_active = False
    with pytest.raises(AccountInactive):
        AccountGuard.ensure_active(user)


def test_lock_is_visible_on_the_same_instance(guard, user):
    now = utcnow()
    for _ in range(MAX_FAILED_ATTEMPTS):
        guard.record_failure(user, now)

    # no commit or reload in between: the caller's object already carries the lock
    assert user.locked_until == now + LOCKOUT_DURATION
    with pytest.raises(AccountLocked):
        guard.gate(user, now + timedelta(minutes=1))
