# app/core/db.py
import logging
from datetime import datetime, timezone
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enable_sqlite_foreign_keys(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Store client owned by the application lifespan.

    Built from settings at startup, stored on ``app.state.db`` and disposed
    on shutdown. Request handlers get sessions through ``get_db``.
    """

    def __init__(self, url: str):
        self.url = make_url(url)
        kwargs = {"pool_pre_ping": True}
        if self.backend == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if self.url.database in (None, "", ":memory:"):
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(self.url, **kwargs)
        if self.backend == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False)

    @property
    def backend(self) -> str:
        return self.url.get_backend_name()

    def create_all(self) -> None:
        # models must be imported so their tables are registered on Base
        from app.models import interaction, listing, message, saved_listing, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("tables ready: %s", sorted(Base.metadata.tables.keys()))

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("select 1"))
            return True
        except Exception:
            logger.exception("database ping failed (backend=%s)", self.backend)
            return False

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("database engine disposed")


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
