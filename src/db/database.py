# src/db/database.py
from typing import Any, AsyncGenerator, Dict
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from core.config import settings
from utils.logger import setup_logger

logger = setup_logger("DATABASE")


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}
    # SQLite uses a single-connection pool and rejects sizing arguments
    if "postgresql" in database_url:
        options.update(
            pool_size=20,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=3600,
            connect_args={
                "server_settings": {
                    "jit": "off",
                    "application_name": "medicai",
                },
            },
        )
    return options


# Create SQLAlchemy engine with async support
engine = create_async_engine(
    settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL)
)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides one database session per request"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_db_connection() -> bool:
    """Return True when a trivial query succeeds"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def create_tables():
    """Create all tables"""
    # Register the mapped classes on Base.metadata
    import models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


async def disconnect_db():
    """Disconnect from database"""
    await engine.dispose()
    logger.info("Database engine disposed")
