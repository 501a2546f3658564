"""
Storage Port - explicit handle on the relational store.

Replaces a module-level engine/session with an object that is created,
opened, injected and closed by its owner:

    storage = StoragePort("sqlite:///./poc_tracker.db")
    storage.open()
    with storage.transaction() as session:
        ...
    storage.close()

SQLAlchemy errors never leak out of a transaction: they are translated to
ConcurrencyError (safe to retry) or StorageError.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from poc_tracker.config import POCConfig, get_config
from poc_tracker.models import Base
from poc_tracker.domain.exceptions import DomainError, ConcurrencyError, StorageError
from poc_tracker.domain.events import handlers  # noqa: F401  (registers ORM listeners)

logger = logging.getLogger(__name__)

# Driver messages that mean "another writer got in the way"
_CONCURRENCY_MARKERS = (
    "deadlock",
    "could not serialize",
    "serialization failure",
    "lock wait timeout",
    "database is locked",
)


def translate_error(exc: SQLAlchemyError) -> DomainError:
    """Map a SQLAlchemy failure onto the engine's error taxonomy."""
    detail = str(getattr(exc, "orig", None) or exc)
    lowered = detail.lower()

    if isinstance(exc, IntegrityError):
        if "unique" in lowered or "duplicate" in lowered:
            return ConcurrencyError(detail)
        return StorageError(detail)

    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return StorageError(detail)
        if any(marker in lowered for marker in _CONCURRENCY_MARKERS):
            return ConcurrencyError(detail)

    return StorageError(detail)


class StoragePort:
    """
    Owns the SQLAlchemy engine and session factory for one database.

    Args:
        database_url: SQLAlchemy URL (defaults to the configured URL)
        config: Configuration (defaults to get_config())
        engine: Pre-built engine to wrap instead of creating one
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        config: Optional[POCConfig] = None,
        engine: Optional[Engine] = None,
    ):
        self.config = config or get_config()
        self.database_url = database_url or self.config.database_url
        self._engine: Optional[Engine] = engine
        self._session_factory: Optional[sessionmaker] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _build_engine(self) -> Engine:
        url = make_url(self.database_url)
        kwargs = {"echo": self.config.database_echo}

        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # One shared connection so every session sees the same memory DB
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
            kwargs["pool_timeout"] = self.config.pool_timeout
            kwargs["connect_args"] = {"connect_timeout": self.config.connect_timeout}

        return create_engine(url, **kwargs)

    def open(self) -> "StoragePort":
        """
        Create the engine, verify connectivity and (optionally) create tables.

        Raises:
            StorageError: If the database cannot be reached
        """
        if self._session_factory is not None:
            return self

        try:
            if self._engine is None:
                self._engine = self._build_engine()
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            if self.config.create_tables:
                Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
            raise StorageError(str(getattr(e, "orig", None) or e))

        self._session_factory = sessionmaker(
            bind=self._engine, autocommit=False, autoflush=False
        )
        logger.info(f"Storage ready ({make_url(self.database_url).get_backend_name()})")
        return self

    def close(self) -> None:
        """Dispose of pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageError("storage is not open")
        return self._engine

    def __enter__(self) -> "StoragePort":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Sessions
    # =========================================================================

    def _new_session(self) -> Session:
        if self._session_factory is None:
            raise StorageError("storage is not open")
        return self._session_factory()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        All-or-nothing unit of work.

        Commits when the block exits normally; rolls back on any exception.
        SQLAlchemy errors (including those raised by the commit itself) are
        re-raised as ConcurrencyError or StorageError.
        """
        session = self._new_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            error = translate_error(e)
            logger.error(f"Transaction aborted: {error.message}")
            raise error from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def read_session(self) -> Iterator[Session]:
        """Session for queries only; never commits."""
        session = self._new_session()
        try:
            yield session
        except SQLAlchemyError as e:
            raise translate_error(e) from e
        finally:
            session.rollback()
            session.close()

    def ping(self) -> bool:
        """True if the database answers a trivial query."""
        if self._engine is None:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False
