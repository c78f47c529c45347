"""
Database configuration with SQLAlchemy 2.0 async support.
"""

import asyncio
import logging
import ssl

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from hirepush.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _get_connect_args(database_url: str) -> dict:
    """Get connection arguments, including SSL for managed databases."""
    connect_args = {}

    if database_url.startswith("sqlite"):
        return connect_args

    # Skip SSL for local development (localhost, 127.0.0.1, or Docker service names)
    local_hosts = ["localhost", "127.0.0.1", "@db:", "@db/", "@postgres:", "@postgres/"]
    is_local = any(host in database_url for host in local_hosts)

    if not is_local:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE  # Managed DBs often use self-signed certs
        connect_args["ssl"] = ssl_context
        logger.info("SSL enabled for database connection")

    return connect_args


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine for the configured (or given) database URL."""
    database_url = database_url or settings.database_url
    kwargs = {
        "echo": settings.debug,
        "connect_args": _get_connect_args(database_url),
        "pool_pre_ping": True,
    }
    # SQLite uses a static/null pool that rejects sizing arguments
    if not database_url.startswith("sqlite"):
        kwargs["pool_size"] = settings.database_pool_size
        kwargs["max_overflow"] = settings.database_max_overflow
    return create_async_engine(database_url, **kwargs)


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine()
async_session_maker = build_session_maker(engine)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Initialize database (create tables if needed) with retry logic."""
    bind = bind or engine

    # Managed databases may take a while to accept connections
    max_retries = 10
    retry_delay = 5  # seconds

    logger.info("Connecting to database: %s", bind.url.render_as_string(hide_password=True))

    for attempt in range(max_retries):
        try:
            async with bind.begin() as conn:
                # Import all models to ensure they're registered
                from hirepush.models import push_subscription  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database initialized successfully")
            return
        except (OSError, DBAPIError) as e:
            if attempt < max_retries - 1:
                logger.warning(
                    "Database connection attempt %d/%d failed: %s; retrying in %d seconds",
                    attempt + 1, max_retries, e, retry_delay,
                )
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Database connection failed after %d attempts", max_retries)
                raise


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
