import ssl

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


def build_engine(database_url: str, ssl_required: bool = True) -> AsyncEngine:
    """
    Create the async engine (and its connection pool) for a database URL.

    Managed Postgres (Neon and friends) requires SSL but serves certificates
    we don't validate, so hostname and chain checks are relaxed.
    """
    connect_args = {}
    if ssl_required and database_url.startswith("postgresql"):
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context

    return create_async_engine(
        database_url, connect_args=connect_args, pool_pre_ping=True
    )


engine = build_engine(settings.DATABASE_URL, settings.DB_SSL_REQUIRED)

# Talk to the DB through async sessions without refreshes after closed conn to avoid errors in async programming
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


# This is the "Bridge" that gives routes and the ETL access to postgres
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return AsyncSessionLocal


# All the models are "stored" in the Base class will be processed by the Engine
class Base(DeclarativeBase):
    pass
