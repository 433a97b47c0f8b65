from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from .core.config import settings


def build_engine(db_url: str, timeout_seconds: int = settings.DB_TIMEOUT_SECONDS, **overrides):
    """Engine with a conservative per-statement timeout for the configured backend."""
    engine_kwargs = {}

    if db_url.startswith("sqlite"):
        # Busy timeout doubles as the lock-wait bound for concurrent writers
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False, "timeout": timeout_seconds}
        })
    else:
        # Better resiliency for managed Postgres
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": timeout_seconds,
            "connect_args": {
                "connect_timeout": timeout_seconds,
                "options": f"-c statement_timeout={timeout_seconds * 1000}",
            },
        })
    engine_kwargs.update(overrides)

    new_engine = create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)

    if db_url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(target_engine=None):
    # Importing the models registers every table on SQLModel.metadata
    from .db import models  # noqa: F401

    SQLModel.metadata.create_all(target_engine or engine)


def get_session():
    with Session(engine) as session:
        yield session
