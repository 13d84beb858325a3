# irms/db/session.py
from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from irms.db.base import Base


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite gets thread sharing and FK enforcement."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in {"sqlite://", "sqlite:///"}:
            # a single shared connection, otherwise every session sees an empty DB
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, future=True, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True, future=True)


class Database:
    """
    Owns the engine and session factory for one application instance.
    Opened at startup, disposed at shutdown.
    """

    def __init__(self, url: str, engine: Optional[Engine] = None):
        self.url = url
        self.engine = engine or build_engine(url)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    def create_all(self) -> None:
        # make sure every model module is registered on Base.metadata
        import irms.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Iterator[Session]:
        """Yield a DB session and make sure it's closed afterwards."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()
