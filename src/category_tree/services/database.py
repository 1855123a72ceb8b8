"""
Database connection and session management for Category Tree.

This module provides:
- Database engine creation and configuration
- Session factory for database operations
- Database initialization (create tables)
- Transaction scopes with explicit ownership
- Foreign key enforcement for SQLite
"""

from contextlib import contextmanager
from typing import Iterator, Optional
import logging

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from category_tree.models.base import Base
from category_tree.utils.config import get_config

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Enable foreign key enforcement on SQLite connections.

    Cascading deletes (elements -> categories, locales, content, tree nodes)
    rely on it.
    """
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create and configure the database engine.

    Args:
        database_url: Optional database URL. If None, uses config default.
        echo: If True, log all SQL statements (useful for debugging)

    Returns:
        Configured SQLAlchemy Engine
    """
    if database_url is None:
        database_url = get_config().database_url

    logger.info(f"Creating database engine: {database_url}")

    if ":memory:" in database_url or "mode=memory" in database_url:
        # In-memory databases (testing) need a single shared connection
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_database(engine: Optional[Engine] = None) -> None:
    """
    Initialize the database by creating all tables.

    Safe to call multiple times - existing tables won't be recreated.

    Args:
        engine: Optional engine to use. If None, uses global engine.
    """
    if engine is None:
        engine = get_engine()

    logger.info("Initializing database tables")

    # Register every model with Base.metadata
    from category_tree import models  # noqa: F401

    Base.metadata.create_all(engine)

    logger.info("Database tables initialized successfully")


def get_engine(force_recreate: bool = False) -> Engine:
    """
    Get the global database engine.

    Args:
        force_recreate: If True, recreate the engine even if one exists

    Returns:
        Database engine
    """
    global _engine

    if _engine is None or force_recreate:
        _engine = create_database_engine()

    return _engine


def get_session_factory() -> sessionmaker:
    """
    Get the global session factory.

    Returns:
        Session factory (sessionmaker)
    """
    global _SessionFactory

    if _SessionFactory is None:
        engine = get_engine()
        _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    return _SessionFactory


def get_session() -> Session:
    """
    Create a new database session.

    Returns:
        New Session instance
    """
    session_factory = get_session_factory()
    return session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Provide a transactional scope for database operations.

    - Creates a new session
    - Commits on success
    - Rolls back on exception
    - Always closes the session

    Yields:
        Database session

    Example:
        with session_scope() as session:
            session.add(Structure(max_levels=0))
            # Commit happens automatically if no exception
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


class TransactionContext:
    """
    A session plus the knowledge of whether the current operation owns it.

    Only the owner commits or rolls back. Operations running inside a
    caller-supplied session leave the boundary to the caller.
    """

    def __init__(self, session: Session, owner: bool):
        self.session = session
        self.owner = owner
        self.rolled_back = False

    def rollback(self) -> None:
        """Roll back now if this context owns the transaction."""
        if self.owner:
            self.session.rollback()
            self.rolled_back = True


@contextmanager
def transaction_scope(session: Optional[Session] = None) -> Iterator[TransactionContext]:
    """
    Run a block in the caller's transaction or in a new one.

    If ``session`` is given, the block runs inside it and nothing is committed
    or rolled back here: the caller owns the boundary. Otherwise a new session
    is opened, committed on success (unless the block already rolled back
    through ``ctx.rollback()``), rolled back on exception, and closed.

    Args:
        session: Optional caller-owned session

    Yields:
        TransactionContext for the block
    """
    if session is not None:
        yield TransactionContext(session, owner=False)
        return

    own_session = get_session()
    ctx = TransactionContext(own_session, owner=True)
    try:
        yield ctx
        if not ctx.rolled_back:
            own_session.commit()
    except Exception:
        own_session.rollback()
        raise
    finally:
        own_session.close()


def verify_database() -> bool:
    """
    Verify that the database is accessible and has tables.

    Returns:
        True if database is valid, False otherwise
    """
    try:
        engine = get_engine()
        tables = inspect(engine).get_table_names()
        expected_tables = ["category_groups", "categories", "structures"]
        return all(table in tables for table in expected_tables)
    except Exception as e:
        logger.error(f"Database verification failed: {e}")
        return False


def initialize_app_database() -> None:
    """
    Initialize the application database.

    Creates the database file and tables if they don't exist.
    """
    config = get_config()

    if config.database_url.startswith("sqlite:///") and ":memory:" not in config.database_url:
        config.ensure_directories()
        if not config.database_exists():
            logger.info(f"Creating new database at: {config.database_path}")
        else:
            logger.info(f"Using existing database at: {config.database_path}")

    engine = get_engine()
    init_database(engine)

    if verify_database():
        logger.info("Database initialized and verified successfully")
    else:
        logger.warning("Database verification failed - tables may not exist")
