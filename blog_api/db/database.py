from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
import logging
import os
from typing import Optional
from functools import lru_cache

logger = logging.getLogger(__name__)

# Database configuration
SQLITE_DEV_DB = "sqlite:///./dev.db"
SQLITE_TEST_DB = "sqlite:///./test.db"
SQLITE_PROD_DB = "sqlite:///./prod.db"

DEFAULT_POOL_SIZE = 4

Base = declarative_base()


def get_database_url() -> str:
    """Resolve the database URL from APP_ENV / DATABASE_URL"""
    env = os.getenv("APP_ENV", "development")
    if env == "test":
        return SQLITE_TEST_DB
    elif env == "production":
        return os.getenv("DATABASE_URL", SQLITE_PROD_DB)
    else:  # development
        return SQLITE_DEV_DB


def build_engine(database_url: str, pool_size: Optional[int] = None) -> Engine:
    """Create an engine with a bounded connection pool

    Args:
        database_url: SQLAlchemy database URL
        pool_size: maximum number of pooled connections, overflow is disabled
    """
    pool_size = pool_size or int(os.getenv("DB_POOL_SIZE", DEFAULT_POOL_SIZE))
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        pool_size=pool_size,
        max_overflow=0,
    )

    if engine.dialect.name == "sqlite":
        # pysqlite starts transactions lazily and breaks SAVEPOINT,
        # let SQLAlchemy emit BEGIN itself
        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    logger.info("Database engine created for %s (pool_size=%d)", engine.url.render_as_string(hide_password=True), pool_size)
    return engine


@lru_cache()
def get_engine() -> Engine:
    """Get the process-wide database engine"""
    return build_engine(get_database_url())


def get_session_maker() -> sessionmaker[Session]:
    """Get the session factory, every session is a lease on a pooled connection"""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def create_tables(db_engine: Optional[Engine] = None):
    """Create all tables

    Args:
        db_engine: optional engine, the default engine is used when omitted
    """
    # models must be imported so their tables are registered on Base.metadata
    from blog_api.models import post, post_tag, tag  # noqa: F401

    engine = db_engine or get_engine()
    Base.metadata.create_all(bind=engine)


def dispose_engine():
    """Close every pooled connection and forget the engine"""
    if get_engine.cache_info().currsize:
        get_engine().dispose()
        get_engine.cache_clear()
        logger.info("Database engine disposed")
