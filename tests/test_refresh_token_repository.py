from datetime import timedelta

from sqlmodel import select

from chatauth.db.models import RefreshToken
from chatauth.utils import utcnow


def test_find_valid_returns_token_and_owner(refresh_repo, make_user):
    user = make_user("13800138000", name="Alice")
    refresh_repo.create(user.id, "tok-1", utcnow() + timedelta(days=1))

    found = refresh_repo.find_valid("tok-1")
    assert found is not None
    record, owner = found
    assert record.user_id == user.id
    assert owner.phone == "13800138000"
    assert owner.name == "Alice"


def test_find_valid_skips_revoked_expired_and_unknown(refresh_repo, make_user):
    user = make_user("13800138000")
    refresh_repo.create(user.id, "expired", utcnow() - timedelta(seconds=1))
    refresh_repo.create(user.id, "revoked", utcnow() + timedelta(days=1))
    refresh_repo.revoke("revoked")

    assert refresh_repo.find_valid("expired") is None
    assert refresh_repo.find_valid("revoked") is None
    assert refresh_repo.find_valid("missing") is None


def test_revoke_is_idempotent(refresh_repo, make_user):
    user = make_user("13800138000")
    refresh_repo.create(user.id, "tok-1", utcnow() + timedelta(days=1))

    assert refresh_repo.revoke("tok-1") is True
    assert refresh_repo.revoke("tok-1") is False
    assert refresh_repo.revoke("never-issued") is False


def test_revoke_all_for_user_leaves_other_users_alone(refresh_repo, make_user):
    alice = make_user("13800138000")
    bob = make_user("13900139000")
    refresh_repo.create(alice.id, "a1", utcnow() + timedelta(days=1))
    refresh_repo.create(alice.id, "a2", utcnow() + timedelta(days=1))
    refresh_repo.create(bob.id, "b1", utcnow() + timedelta(days=1))

    assert refresh_repo.revoke_all_for_user(alice.id) == 2
    assert refresh_repo.count_active_for_user(alice.id) == 0
    assert refresh_repo.count_active_for_user(bob.id) == 1


def test_cleanup_removes_revoked_and_expired(refresh_repo, make_user, session):
    user = make_user("13800138000")
    refresh_repo.create(user.id, "live", utcnow() + timedelta(days=1))
    refresh_repo.create(user.id, "expired", utcnow() - timedelta(days=1))
    refresh_repo.create(user.id, "revoked", utcnow() + timedelta(days=1))
    refresh_repo.revoke("revoked")

    assert refresh_repo.cleanup() == 2
    assert session.exec(select(RefreshToken.token)).all() == ["live"]
