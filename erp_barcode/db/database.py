"""
==============================================================================
Database Connection Management Module
==============================================================================

Database connection management using SQLAlchemy.

This module implements:
- DatabaseManager: explicitly constructed engine + session factory owner
- get_db: FastAPI dependency reading the manager from ``app.state``

The manager is never a module-level singleton. ``create_app`` builds one
from settings (or receives one from the caller, e.g. tests with an
in-memory engine) and every consumer gets it passed in.

SQLAlchemy Architecture:
-----------------------
    ┌─────────────────┐
    │ DatabaseManager │ (one per application)
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │     Engine      │ (Connection pool)
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │  sessionmaker   │ (Session factory)
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │    Session      │ (Request-scoped)
    └─────────────────┘

SQLite Note:
-----------
SQLite connections are shared with FastAPI's threadpool, so
'check_same_thread' is disabled and foreign keys are switched on.

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from fastapi.requests import HTTPConnection
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


# Module logger
logger = logging.getLogger(__name__)

# SQLAlchemy declarative base for all models
Base = declarative_base()


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseManager:
    """
    Owner of the SQLAlchemy engine and session factory.

    Either a database URL or a ready engine must be given. The engine is
    created lazily on first access when only a URL is known.

    Example:
        >>> db_manager = DatabaseManager("sqlite:///./storage/db/erp.db")
        >>> with db_manager.session_scope() as session:
        ...     session.query(Product).count()
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        *,
        engine: Optional[Engine] = None,
        echo: bool = False
    ) -> None:
        if database_url is None and engine is None:
            raise ValueError("DatabaseManager needs a database_url or an engine")

        self._database_url = database_url or str(engine.url)
        self._engine: Optional[Engine] = engine
        self._echo = echo
        self._session_factory: Optional[sessionmaker] = None

        if engine is not None and engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(engine)

    # =========================================================================
    # ENGINE MANAGEMENT
    # =========================================================================

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        """
        Create the engine with settings suited to the database type.

        - SQLite: disables check_same_thread, enables foreign keys
        - PostgreSQL/MySQL: connection pooling with pre-ping
        """
        database_url = self._database_url

        if database_url.startswith("sqlite"):
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                echo=self._echo,
            )
            _enable_sqlite_foreign_keys(engine)
            logger.info(f"Created SQLite engine: {database_url}")
        else:
            engine = create_engine(
                database_url,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=1800,
                pool_pre_ping=True,
                echo=self._echo,
            )
            logger.info("Created database engine with pooling")

        return engine

    # =========================================================================
    # SESSION MANAGEMENT
    # =========================================================================

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def get_session(self) -> Session:
        """
        Get a new database session.

        The caller is responsible for closing the session.
        """
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Commits on success, rolls back on exception, always closes.
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # =========================================================================
    # TABLE MANAGEMENT
    # =========================================================================

    def create_tables(self) -> None:
        """Create all tables that do not exist yet."""
        # Registers every model on Base.metadata
        from erp_barcode.db import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created/verified")

    def drop_tables(self) -> None:
        """Drop all tables. Deletes every row."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("All database tables dropped")

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def verify_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            return False

    def dispose(self) -> None:
        """Dispose of the connection pool on shutdown."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database connection pool disposed")

    def __repr__(self) -> str:
        return f"DatabaseManager(url={self._database_url!r})"


# =============================================================================
# FASTAPI DEPENDENCY
# =============================================================================

def get_db(request: HTTPConnection) -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a request-scoped session.

    Typed as HTTPConnection so WebSocket routes can depend on it too.

    Usage:
        @router.get("/products")
        async def list_products(db: Session = Depends(get_db)):
            ...
    """
    db_manager: DatabaseManager = request.app.state.database
    session = db_manager.get_session()
    try:
        yield session
    finally:
        session.close()
