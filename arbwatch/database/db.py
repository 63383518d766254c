"""
Database initialization and session management.
"""

from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from loguru import logger

from .models import Base


class Database:
    """Async database connection and session management"""

    def __init__(self, db_path: str = "arbwatch.db"):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file, ":memory:", or full connection URL
        """
        # Handle both file paths and connection URLs
        if "://" in db_path:
            self.db_url = db_path
            self.db_path = db_path.split(":///", 1)[-1] if ":///" in db_path else ":memory:"
        else:
            self.db_path = db_path
            if db_path == ":memory:":
                self.db_url = "sqlite+aiosqlite://"
            else:
                self.db_url = f"sqlite+aiosqlite:///{db_path}"

        self.engine = None
        self.SessionLocal = None
        self._initialized = False

    @property
    def is_memory(self) -> bool:
        return self.db_path in ("", ":memory:")

    async def initialize(self):
        """Initialize async database connection and create tables"""
        if self._initialized:
            return

        engine_kwargs = {"echo": False}
        if self.db_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.is_memory:
                # One shared connection, otherwise every session sees an empty DB
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_async_engine(self.db_url, **engine_kwargs)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.SessionLocal = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self._initialized = True
        logger.info(f"Database initialized at {self.db_path or 'memory'}")

    async def close(self):
        """Close database connection"""
        if self.engine:
            await self.engine.dispose()
            self._initialized = False

    @asynccontextmanager
    async def session(self):
        """Get an async database session with automatic commit/rollback"""
        if not self._initialized:
            await self.initialize()

        async with self.SessionLocal() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                # Constraint conflicts are left to the caller to handle or report
                await session.rollback()
                logger.debug(f"Integrity conflict, rolled back: {e.orig}")
                raise
            except Exception as e:
                await session.rollback()
                logger.error(f"Database error: {e}")
                raise


async def init_db(db_path: str = "arbwatch.db") -> Database:
    """Create and initialize a database"""
    db = Database(db_path)
    await db.initialize()
    return db
