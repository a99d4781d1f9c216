"""Ledger Store: engine lifecycle and tenant-bound transactions"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from credit_ledger.config import Settings, settings as default_settings
from credit_ledger.domain.exceptions import (
    ConcurrencyConflict,
    DomainException,
    StorageFailure,
    TenantRequired,
)
from credit_ledger.infrastructure.database.models import Base
from credit_ledger.infrastructure.database.repositories import LedgerRepository
from credit_ledger.infrastructure.observability.metrics import conflict_counter

# PostgreSQL SQLSTATEs that mean "another writer got there first"
_CONFLICT_SQLSTATES = {
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available (lock_timeout)
    "57014",  # query_canceled (statement_timeout)
}


def require_tenant(tenant_id: Optional[str]) -> str:
    """Reject calls that arrive without an owning tenant"""
    if tenant_id is None or not str(tenant_id).strip():
        raise TenantRequired()
    return str(tenant_id).strip()


def is_conflict(error: DBAPIError) -> bool:
    """True when a driver error is a lock/serialization conflict worth retrying"""
    orig = error.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


def enable_sqlite_write_locks(engine: Engine) -> None:
    """
    Make SQLite honour the ledger's row-lock contract.

    SQLite has no FOR UPDATE and pysqlite defers BEGIN until the first
    write, so balance reads would run unlocked. Driver-level BEGIN is
    switched off and issued here instead: IMMEDIATE (write lock up front)
    for connections carrying the `sqlite_begin` option, DEFERRED otherwise.
    A writer that cannot get the lock within the busy timeout fails with
    "database is locked", which surfaces as ConcurrencyConflict.
    """
    if event.contains(engine, "begin", _sqlite_begin):
        return
    event.listen(engine, "connect", _sqlite_connect)
    event.listen(engine, "begin", _sqlite_begin)


def _sqlite_connect(dbapi_connection, connection_record) -> None:
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    # Readers do not block the writer holding the lock (no-op in memory)
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def _sqlite_begin(conn) -> None:
    mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
    conn.exec_driver_sql(f"BEGIN {mode}")


def create_ledger_engine(config: Settings) -> Engine:
    """Build an engine for the configured database with connection pooling"""
    if config.database_url.startswith("sqlite"):
        return create_engine(
            config.database_url,
            connect_args={"check_same_thread": False, "timeout": config.lock_timeout_ms / 1000},
        )

    # Recycle after 1 hour to avoid stale connections
    return create_engine(
        config.database_url,
        pool_pre_ping=True,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_recycle=3600,
    )


class LedgerStore:
    """
    Durable, transactional store for credit ledger entities.

    The host application owns the lifecycle: build one store at startup,
    inject it into the services, and close() it on shutdown.
    """

    def __init__(self, engine: Engine, config: Settings | None = None):
        self.engine = engine
        self.config = config or default_settings
        writer = engine
        if engine.dialect.name == "sqlite":
            enable_sqlite_write_locks(engine)
            writer = engine.execution_options(sqlite_begin="IMMEDIATE")
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=writer
        )
        self._read_session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "LedgerStore":
        config = config or default_settings
        return cls(create_ledger_engine(config), config)

    def create_schema(self) -> None:
        """Create ledger tables that do not exist yet"""
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def _bound_transaction(self, session: Session) -> None:
        """Bound lock waits and statement time so conflicts fail fast instead of hanging"""
        if self.engine.dialect.name != "postgresql":
            return
        session.execute(text(f"SET LOCAL lock_timeout = {int(self.config.lock_timeout_ms)}"))
        session.execute(text(f"SET LOCAL statement_timeout = {int(self.config.statement_timeout_ms)}"))

    @contextmanager
    def transaction(self, tenant_id: Optional[str]) -> Iterator[LedgerRepository]:
        """
        Run a unit of work for one tenant.

        Commits when the block exits cleanly; any exception rolls back the
        whole unit, so partial ledger writes are never observable.

        Raises:
            TenantRequired: no tenant id supplied
            ConcurrencyConflict: the write conflicted with another transaction
            StorageFailure: any other database error
        """
        tenant_id = require_tenant(tenant_id)
        session = self._session_factory()
        try:
            self._bound_transaction(session)
            yield LedgerRepository(session, tenant_id)
            session.commit()
        except DomainException:
            session.rollback()
            raise
        except DBAPIError as e:
            session.rollback()
            if is_conflict(e):
                conflict_counter.inc()
                logging.warning(f"Ledger write conflict: {e.orig}", extra={"tenant_id": tenant_id})
                raise ConcurrencyConflict("Ledger rows are being modified by another session, retry") from e
            logging.error(f"Ledger storage failure: {e}", extra={"tenant_id": tenant_id})
            raise StorageFailure("Ledger transaction failed and was rolled back") from e
        except SQLAlchemyError as e:
            session.rollback()
            logging.error(f"Ledger storage failure: {e}", extra={"tenant_id": tenant_id})
            raise StorageFailure("Ledger transaction failed and was rolled back") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def read(self, tenant_id: Optional[str]) -> Iterator[LedgerRepository]:
        """Unsynchronized read against last-committed state; never commits"""
        tenant_id = require_tenant(tenant_id)
        session = self._read_session_factory()
        try:
            yield LedgerRepository(session, tenant_id)
        except SQLAlchemyError as e:
            logging.error(f"Ledger read failure: {e}", extra={"tenant_id": tenant_id})
            raise StorageFailure("Ledger read failed") from e
        finally:
            session.rollback()
            session.close()
