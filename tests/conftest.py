import os

# Settings are read at import time, so the environment is fixed before chatauth loads
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_PRIVATE_KEY"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["REQUIRES_AUTH"] = "true"
os.environ["CLEANUP_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["TWILIO_PHONE_NUMBER"] = ""

from datetime import timedelta
from typing import List

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

from chatauth.database import build_engine, get_session
from chatauth.db import models  # noqa: F401
from chatauth.db.models import Role, User
from chatauth.application.ports.chat_provider import ChatTurn
from chatauth.application.services.auth_service import AuthService
from chatauth.application.services.token_issuer import TokenIssuer
from chatauth.infrastructure.audit.std_logger import StdAuditLogger
from chatauth.infrastructure.persistence.sqlalchemy.repositories.refresh_token_repository_sql import SqlRefreshTokenRepository
from chatauth.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from chatauth.infrastructure.persistence.sqlalchemy.repositories.verification_code_repository_sql import SqlVerificationCodeRepository
from chatauth.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from chatauth.infrastructure.security.bcrypt_hasher import BcryptPasswordHasher

TEST_CODE = "123456"


class FakeSms:
    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, phone: str, code: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((phone, code))


class FakeChat:
    def __init__(self):
        self.calls: List[List[ChatTurn]] = []

    def complete(self, messages: List[ChatTurn]) -> str:
        self.calls.append(messages)
        return f"echo: {messages[-1].content}"


@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(eng)
    yield eng
    SQLModel.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def token_issuer():
    return TokenIssuer(
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=30),
    )


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def user_repo(session):
    return SqlUserRepository(session)


@pytest.fixture
def code_repo(session):
    return SqlVerificationCodeRepository(session, timeout_minutes=2, code_factory=lambda: TEST_CODE)


@pytest.fixture
def refresh_repo(session):
    return SqlRefreshTokenRepository(session)


@pytest.fixture
def auth_service(user_repo, code_repo, refresh_repo, token_issuer, sms, hasher):
    return AuthService(
        user_repo=user_repo,
        code_repo=code_repo,
        refresh_repo=refresh_repo,
        token_issuer=token_issuer,
        sms_provider=sms,
        password_hasher=hasher,
        audit_logger=StdAuditLogger(),
        environment="test",
    )


@pytest.fixture
def make_user(session):
    def _make(phone: str, role: Role = Role.USER, name: str = None, suspended: bool = False) -> User:
        user = User(phone=phone, role=role, name=name, is_suspended=suspended)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make


@pytest.fixture
def chat_provider():
    return FakeChat()


@pytest.fixture
def client(engine, sms, chat_provider, token_issuer, hasher):
    from chatauth.main import app
    from chatauth import dependencies as deps

    def _session():
        with Session(engine) as s:
            yield s

    def _code_repo(s: Session = Depends(get_session)):
        return SqlVerificationCodeRepository(s, timeout_minutes=2, code_factory=lambda: TEST_CODE)

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[deps.get_code_repo] = _code_repo
    app.dependency_overrides[deps.get_sms_provider] = lambda: sms
    app.dependency_overrides[deps.get_chat_provider] = lambda: chat_provider
    app.dependency_overrides[deps.get_token_issuer] = lambda: token_issuer
    app.dependency_overrides[deps.get_password_hasher] = lambda: hasher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def memory_limiter():
    return InMemoryRateLimiter()


