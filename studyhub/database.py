"""
Database connection and session management.
Wraps the SQLAlchemy async engine in a handle that the app factory owns.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from fastapi import Request
from typing import AsyncGenerator
import logging

logger = logging.getLogger(__name__)

# Base class for ORM models
Base = declarative_base()


class Database:
    """Engine + session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine = create_async_engine(
            url,
            echo=echo,
            future=True,
            pool_pre_ping=True,
            poolclass=NullPool,  # Use NullPool for better async compatibility
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    async def create_all(self) -> None:
        """Create all tables defined in Base metadata."""
        try:
            async with self.engine.begin() as conn:
                # Import all models to ensure they're registered
                from studyhub.models import database_models  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)
                logger.info("Database tables created/verified")
        except Exception as e:
            logger.error(f"Error initializing database: {e}")
            raise

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Close database connections gracefully."""
        try:
            await self.engine.dispose()
            logger.info("Database connections closed")
        except Exception as e:
            logger.error(f"Error closing database: {e}")
            raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get a database session from the app's handle.

    Yields:
        AsyncSession: Database session

    Example:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Item))
            return result.scalars().all()
    """
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await session.close()
