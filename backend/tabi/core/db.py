from __future__ import annotations

from contextlib import contextmanager
from time import monotonic, perf_counter
from typing import Any, Generator

from anyio import to_thread
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tabi.core.settings import settings

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None
_cached_db_status: dict[str, Any] | None = None
_cached_db_ts: float | None = None
HEALTH_CACHE_SECONDS = 5.0
SQLITE_BUSY_TIMEOUT_SECONDS = 15.0


def _configure_sqlite_connection(dbapi_connection, _connection_record) -> None:
    # pysqlite would otherwise defer BEGIN until the first write; SQLAlchemy
    # emits it from the "begin" hook instead.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_immediate(connection) -> None:
    # Take the database write lock up front so a transaction that reads
    # before it writes cannot interleave with another writer.
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        connect_args: dict[str, Any] = {}
        url = settings.database_url
        if url.startswith("postgresql"):
            connect_args["connect_timeout"] = 1
        elif url.startswith("sqlite"):
            # TestClient and anyio worker threads share the engine.
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS
        _engine = create_engine(
            url,
            connect_args=connect_args,
            pool_pre_ping=True,
            future=True,
        )
        if _engine.dialect.name == "sqlite":
            event.listen(_engine, "connect", _configure_sqlite_connection)
            event.listen(_engine, "begin", _begin_sqlite_immediate)
    return _engine


def _get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )
    return _session_factory


def get_session() -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    factory = _get_session_factory()
    return factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide transactional scope for DB interactions.

    Everything done inside the block commits together or not at all; this is
    the only concurrency boundary the planner relies on.
    """

    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _session_factory = None
    invalidate_db_health_cache()


def invalidate_db_health_cache() -> None:
    global _cached_db_status, _cached_db_ts
    _cached_db_status = None
    _cached_db_ts = None


async def check_db_health(use_cache: bool = True) -> dict[str, Any]:
    global _cached_db_status, _cached_db_ts

    if use_cache and _cached_db_status is not None and _cached_db_ts is not None:
        if monotonic() - _cached_db_ts < HEALTH_CACHE_SECONDS:
            return _cached_db_status

    def _run() -> dict[str, Any]:
        engine = get_engine()
        start = perf_counter()
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            return {"status": "fail", "dialect": engine.dialect.name, "error": str(exc)}
        latency = (perf_counter() - start) * 1000
        return {
            "status": "ok",
            "dialect": engine.dialect.name,
            "latency_ms": round(latency, 3),
            "error": None,
        }

    result = await to_thread.run_sync(_run)
    if use_cache:
        _cached_db_status = result
        _cached_db_ts = monotonic()
    return result
