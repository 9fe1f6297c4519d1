from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager
import asyncio
import logging
import os
from pkg.db_util.types import SqlConfig
from pkg.db_util.sql_alchemy.declarative_base import Base
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy import text
from sqlalchemy.engine import make_url


class SqlConnection:
    """Owns one async engine and its sessionmaker for a database URL."""

    def __init__(self, db_config: SqlConfig, logger: logging.Logger):
        self.db_config = db_config
        self.logger = logger
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    def _engine_options(self) -> dict:
        if self.db_config.is_memory:
            # A single shared connection keeps the in-memory database alive across sessions
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        if self.db_config.is_sqlite:
            return {"connect_args": {"check_same_thread": False}}
        return {
            "pool_size": self.db_config.pool_size,
            "max_overflow": self.db_config.max_overflow,
            "pool_timeout": self.db_config.pool_timeout,
            "pool_recycle": self.db_config.pool_recycle,
            "pool_pre_ping": True,  # Enable connection health checks before using connection
            "connect_args": {"timeout": 15, "command_timeout": 15},
        }

    async def get_engine(self, max_retries: int = 3, initial_delay: float = 2.0) -> AsyncEngine:
        """Get or create the engine, retrying the first connection with exponential backoff."""
        if self._engine is not None:
            return self._engine

        self.logger.info("Database engine not initialized. Creating new engine...")
        if self.db_config.is_sqlite and not self.db_config.is_memory:
            db_path = make_url(self.db_config.url).database
            if db_path:
                os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        last_error = None
        for attempt in range(max_retries):
            try:
                engine = create_async_engine(
                    self.db_config.url,
                    echo=self.db_config.echo,
                    **self._engine_options(),
                )

                self.logger.info(f"Testing database connection (attempt {attempt + 1}/{max_retries})...")
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))

                self._sessionmaker = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )
                self._engine = engine
                self.logger.info("Async engine and sessionmaker created successfully.")
                return engine

            except (SQLAlchemyError, OSError, ConnectionError) as e:
                last_error = e
                delay = initial_delay * (2 ** attempt)  # Exponential backoff

                if attempt < max_retries - 1:
                    self.logger.warning(
                        f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    self.logger.error(f"Failed to create database engine after {max_retries} attempts: {e}", exc_info=True)

        raise ConnectionError(f"Could not create database engine after {max_retries} attempts: {last_error}") from last_error

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provides an asynchronous SQLAlchemy session; commits on success, rolls back on error."""
        await self.get_engine()
        if self._sessionmaker is None:
            raise ConnectionError("Database engine/sessionmaker not initialized.")

        session: AsyncSession = self._sessionmaker()
        session_id = id(session)
        try:
            yield session
            if session.in_transaction():
                await session.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"SQLAlchemy error in session {session_id}: {e}. Rolling back.", exc_info=True)
            if session.in_transaction():
                await session.rollback()
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error in session {session_id}: {e}. Rolling back.", exc_info=True)
            if session.in_transaction():
                await session.rollback()
            raise
        finally:
            try:
                await session.close()
            except Exception as e:
                self.logger.error(f"Error closing session {session_id}: {e}", exc_info=True)

    async def create_all(self) -> None:
        """Create every table registered on the declarative Base."""
        engine = await self.get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logger.info(f"Ensured tables: {', '.join(sorted(Base.metadata.tables))}")

    async def ping(self) -> bool:
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            self.logger.warning(f"Database ping failed: {e}")
            return False

    async def close_engine(self):
        if self._engine is None:
            self.logger.info("Database engine was not initialized, no need to close.")
            return
        self.logger.info("Closing database engine and connection pool...")
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        self.logger.info("Database engine closed.")
