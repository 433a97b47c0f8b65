from datetime import timedelta

from sqlmodel import select

from chatauth.application.services.cleanup_service import CleanupService
from chatauth.db.models import RefreshToken, VerificationCode
from chatauth.tasks import cleanup_loop, run_cleanup_once
from chatauth.utils import utcnow


def test_cleanup_service_reports_counts(code_repo, refresh_repo, make_user):
    user = make_user("13800138000")
    code_repo.create("13800138000", "111111", utcnow() - timedelta(minutes=1))
    code_repo.create("13800138000", "222222", utcnow() + timedelta(minutes=1))
    refresh_repo.create(user.id, "old", utcnow() - timedelta(days=1))
    refresh_repo.create(user.id, "live", utcnow() + timedelta(days=1))

    report = CleanupService(code_repo=code_repo, refresh_repo=refresh_repo).run()
    assert report.codes_deleted == 1
    assert report.tokens_deleted == 1


def test_run_cleanup_once_uses_its_own_session(engine, session, make_user, refresh_repo):
    user = make_user("13800138000")
    refresh_repo.create(user.id, "revoked", utcnow() + timedelta(days=1))
    refresh_repo.revoke("revoked")
    session.add(VerificationCode(phone="13800138000", code="123456", expires_at=utcnow() + timedelta(minutes=1), is_used=True))
    session.commit()

    report = run_cleanup_once(engine)

    assert (report.codes_deleted, report.tokens_deleted) == (1, 1)
    assert session.exec(select(RefreshToken)).all() == []


async def test_cleanup_loop_survives_failures():
    calls = []

    def flaky_job():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("database unavailable")

    await cleanup_loop(0, job=flaky_job, max_runs=3)
    assert calls == [0, 1, 2]
