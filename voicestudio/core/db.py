from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from voicestudio.core.config import Settings
from voicestudio.core.models import Base

DATABASE_URL = Settings().DATABASE_URL
_IN_MEMORY = DATABASE_URL in ("sqlite://", "sqlite:///:memory:")


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if _IN_MEMORY:
        # one shared connection, otherwise every thread sees an empty DB
        kwargs["poolclass"] = StaticPool
    else:
        Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
    return kwargs


engine = create_engine(DATABASE_URL, echo=False, future=True, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
)


if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def _sqlite_foreign_keys(dbapi_conn, _record) -> None:
        # SQLite enforces ON DELETE rules per connection only
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


def bootstrap() -> None:
    if engine.dialect.name == "sqlite" and not _IN_MEMORY:
        with engine.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.commit()

    # Create tables for a fresh DB
    Base.metadata.create_all(bind=engine)
