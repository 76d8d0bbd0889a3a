"""Engine, session factory and the UTC datetime column type.

PostgreSQL is the production backend. A sqlite:/// URL works for local
development: foreign keys are switched on per connection, since SQLite
leaves them off and the recipe/collection cascades rely on them.

Timestamps are stored as naive UTC and come back tz-aware.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, TypeDecorator, create_engine, event
from sqlalchemy.orm import sessionmaker

from .config import settings


class UTCDateTime(TypeDecorator):
    """Naive-UTC DateTime column; aware values are converted on the way in."""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _make_engine(url: str):
    if url.startswith("sqlite"):
        eng = create_engine(url, connect_args={"check_same_thread": False})

        @event.listens_for(eng, "connect")
        def _sqlite_fks(dbapi_conn, _record):
            dbapi_conn.execute("PRAGMA foreign_keys=ON")

        return eng

    eng = create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=1800,
        connect_args={"connect_timeout": 10},
    )

    @event.listens_for(eng, "connect")
    def _utc_session(dbapi_conn, _record):
        with dbapi_conn.cursor() as cursor:
            cursor.execute("SET timezone = 'UTC'")

    return eng


engine = _make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db():
    """Request-scoped session; routers commit explicitly."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
