"""
Database engine and session factories.

Sessions are short-lived: every service call opens its own session from
one of these factories.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from upline.config.settings import settings


def create_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine (defaults to the primary database)."""
    kwargs.setdefault("echo", settings.database_echo)
    return create_async_engine(
        url or settings.database_url,
        pool_pre_ping=True,
        **kwargs,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create a session maker bound to the engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = create_engine()
async_session_maker = create_session_maker(engine)

# Downline reporting tolerates replica lag
if settings.replica_database_url:
    reporting_engine = create_engine(settings.reporting_database_url)
    reporting_session_maker = create_session_maker(reporting_engine)
else:
    reporting_engine = engine
    reporting_session_maker = async_session_maker
