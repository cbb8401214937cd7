"""DBStorage against an in-memory SQLite database."""

from datetime import timedelta

import pytest

from models.api_key import ApiKey
from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.user import User


@pytest.fixture
def user(storage):
    account = User(email="store@example.com", username="store", password_hash="x")
    with storage.transaction():
        storage.add_account(account)
    return account


def _refresh(user, value="token-1", **kwargs):
    kwargs.setdefault("expires_at", utcnow() + timedelta(days=7))
    return RefreshToken(token=value, user_id=user.id, **kwargs)


def test_account_lookup_by_email_or_username(storage, user):
    assert storage.find_account_by_email_or_username("store@example.com").id == user.id
    assert storage.find_account_by_email_or_username("store").id == user.id
    assert storage.find_account_by_email_or_username("nobody") is None
    assert storage.account_exists("other@example.com", "store")
    assert not storage.account_exists("other@example.com", "other")


def test_new_account_defaults(storage, user):
    stored = storage.find_account_by_id(user.id)
    assert stored.is_active is True
    assert stored.email_verified is False
    assert stored.failed_login_attempts == 0
    assert stored.roles == ["User"]


def test_increment_failed_attempts_returns_new_count(storage, user):
    assert storage.increment_failed_attempts(user.id) == 1
    assert storage.increment_failed_attempts(user.id) == 2
    storage.save()


def test_conditional_revoke_only_succeeds_once(storage, user):
    record = _refresh(user)
    with storage.transaction():
        storage.insert_refresh_token(record)

    with storage.transaction():
        assert storage.revoke_refresh_token(record.id, replaced_by="token-2") is True
    with storage.transaction():
        assert storage.revoke_refresh_token(record.id, replaced_by="token-3") is False

    stored = storage.find_refresh_token("token-1")
    assert stored.is_revoked
    assert stored.replaced_by_token == "token-2"
    assert storage.find_active_refresh_token("token-1") is None


def test_expired_refresh_token_is_not_active(storage, user):
    with storage.transaction():
        storage.insert_refresh_token(_refresh(user, expires_at=utcnow() - timedelta(seconds=1)))
    assert storage.find_refresh_token("token-1") is not None
    assert storage.find_active_refresh_token("token-1") is None


def test_revoke_all_refresh_tokens(storage, user):
    with storage.transaction():
        storage.insert_refresh_token(_refresh(user, "a"))
        storage.insert_refresh_token(_refresh(user, "b"))
        storage.insert_refresh_token(_refresh(user, "c", revoked_at=utcnow()))
    with storage.transaction():
        assert storage.revoke_all_refresh_tokens(user.id) == 2
    assert storage.find_active_refresh_token("a") is None
    assert storage.find_active_refresh_token("b") is None


def test_api_key_active_filtering(storage, user):
    now = utcnow()
    live = ApiKey(user_id=user.id, name="live", key_hash="h", prefix="ak00000001", scopes=["read"])
    expired = ApiKey(
        user_id=user.id, name="old", key_hash="h", prefix="ak00000002", scopes=["read"],
        expires_at=now - timedelta(days=1),
    )
    with storage.transaction():
        storage.insert_api_key(live)
        storage.insert_api_key(expired)

    assert storage.count_active_api_keys(user.id, now) == 1
    assert storage.find_api_key_by_prefix("ak00000001", now).id == live.id
    assert storage.find_api_key_by_prefix("ak00000002", now) is None
    assert storage.prefix_exists("ak00000002")

    with storage.transaction():
        assert storage.revoke_api_key(live.id, now) is True
    with storage.transaction():
        assert storage.revoke_api_key(live.id, now) is False
    assert storage.count_active_api_keys(user.id, now) == 0
    assert len(storage.list_api_keys(user.id)) == 2


def test_api_keys_scoped_to_owner(storage, user):
    other = User(email="other@example.com", username="other", password_hash="x")
    key = ApiKey(user_id=user.id, name="mine", key_hash="h", prefix="ak00000003", scopes=["read"])
    with storage.transaction():
        storage.add_account(other)
        storage.insert_api_key(key)
    assert storage.find_api_key(user.id, key.id) is not None
    assert storage.find_api_key(other.id, key.id) is None


def test_deleting_account_cascades(storage, user):
    with storage.transaction():
        storage.insert_refresh_token(_refresh(user))
        storage.insert_api_key(
            ApiKey(user_id=user.id, name="k", key_hash="h", prefix="ak00000004", scopes=["read"])
        )
    with storage.transaction():
        storage.delete_account(user)

    assert storage.count(User) == 0
    assert storage.count(RefreshToken) == 0
    assert storage.count(ApiKey) == 0


def test_ping(storage):
    assert storage.ping() is True


def test_lockout_updates_reach_loaded_account(storage, user):
    until = utcnow() + timedelta(minutes=30)
    storage.increment_failed_attempts(user.id)
    storage.lock_account(user.id, until)
    assert user.failed_login_attempts == 1
    assert user.locked_until == until

    storage.reset_failed_attempts(user.id)
    assert user.failed_login_attempts == 0
    assert user.locked_until is None
    storage.save()


def test_revoked_flag_follows_revoked_at(storage, user):
    key = ApiKey(user_id=user.id, name="k", key_hash="h", prefix="ak00000005", scopes=["read"])
    with storage.transaction():
        storage.insert_api_key(key)
    assert key.is_revoked is False
    with storage.transaction():
        storage.revoke_api_key(key.id)
    assert storage.find_api_key(user.id, key.id).is_revoked is True
