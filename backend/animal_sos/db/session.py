from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool, StaticPool
from animal_sos.core.config import settings


def _unicode_lower(value):
    return value.lower() if value is not None else None


def install_sqlite_functions(engine: AsyncEngine) -> None:
    """
    SQLite's built-in lower() only folds ASCII letters. Swap in Python's
    so case-insensitive search matches accented text as Postgres does.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        dbapi_conn.create_function("lower", 1, _unicode_lower)


db_url = settings.DATABASE_URL

if db_url.startswith("sqlite"):
    engine = create_async_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_functions(engine)
else:
    engine = create_async_engine(
        db_url,
        echo=settings.ENVIRONMENT == "development",
        future=True,
        poolclass=NullPool,
    )

# Create Session Factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

async def get_db() -> AsyncSession:
    """
    Dependency for getting an async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
