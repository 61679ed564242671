import argparse
import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app import models  # noqa: F401
from app.config import settings
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("db")

# --- Application DB ---
if not settings.app_database_url:
    raise ValueError(
        "WRITERSINN_DATABASE_URL environment variable not set for Application DB"
    )

if settings.app_database_url.startswith("postgresql://"):
    settings.app_database_url = settings.app_database_url.replace(
        "postgresql://", "postgresql+asyncpg://", 1
    )
elif not settings.app_database_url.startswith(
    ("postgresql+asyncpg://", "sqlite+aiosqlite://")
):
    raise ValueError(
        f"Unsupported settings.app_database_url prefix: {settings.app_database_url}"
    )

logger.debug(f"Application DB URL: {settings.app_database_url}")

if settings.is_sqlite:
    # aiosqlite connections are bound to the loop that opened them, so they
    # are never pooled across requests or test event loops.
    app_engine = create_async_engine(
        settings.app_database_url, poolclass=NullPool, echo=False
    )

    @event.listens_for(app_engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    app_engine = create_async_engine(
        settings.app_database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=60,
        pool_recycle=300,
        echo=False,
        connect_args={"timeout": 30},
    )

AppAsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=app_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def set_search_path(session: AsyncSession) -> None:
    if settings.schema_name:
        await session.execute(
            text(f"SET search_path TO {settings.schema_name}, public")
        )


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit the work done inside the block, or roll all of it back."""
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


# --- Dependency for FastAPI (Application DB) ---
async def get_app_db() -> AsyncGenerator[AsyncSession, None]:
    async with AppAsyncSessionLocal() as session:
        await set_search_path(session)
        yield session


async def init_db():
    """Create the schema (PostgreSQL) and all tables that do not exist yet."""
    if not Base.metadata.tables:
        logger.warning(
            "Base.metadata.tables is EMPTY! No tables will be created for Application DB."
        )
    else:
        logger.debug(
            f"Tables registered in Base.metadata: {list(Base.metadata.tables.keys())}"
        )

    async with app_engine.begin() as conn:
        if settings.schema_name:
            await conn.execute(
                text(f"CREATE SCHEMA IF NOT EXISTS {settings.schema_name}")
            )
            await conn.execute(
                text(f"SET search_path TO {settings.schema_name}, public")
            )
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema initialized.")


async def check_db_connection() -> bool:
    """Run a trivial query to confirm the database is reachable."""
    try:
        async with app_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connectivity check failed: {e}", exc_info=True)
        return False


async def close_db():
    """Closes database connections."""
    logger.info("Closing database connections.")
    await app_engine.dispose()
    logger.info("Database connections closed.")


async def list_tables() -> list[str]:
    """List the application tables present in the database."""

    def _inspect(sync_conn):
        from sqlalchemy import inspect

        return inspect(sync_conn).get_table_names(schema=settings.schema_name)

    async with app_engine.connect() as conn:
        table_names = await conn.run_sync(_inspect)

    logger.debug(f"Tables found: {table_names}")
    return sorted(table_names)


async def reset_db():
    """Drop and recreate every application table. THIS IS DESTRUCTIVE."""
    logger.warning(
        f"Resetting the Application database (schema: {settings.schema_name}). THIS IS A DESTRUCTIVE OPERATION."
    )
    async with app_engine.begin() as conn:
        if settings.schema_name:
            await conn.execute(
                text(f"SET search_path TO {settings.schema_name}, public")
            )
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Application tables dropped.")

    await init_db()
    logger.info("Application database has been reset and re-initialized.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="WritersInn Application Database Utility"
    )
    parser.add_argument(
        "action",
        choices=["init", "reset", "list-tables"],
        help="'init' to create missing tables, "
        "'reset' to drop and recreate all tables, "
        "'list-tables' to show the tables that exist.",
    )
    args = parser.parse_args()

    if args.action == "init":
        asyncio.run(init_db())
    elif args.action == "reset":
        confirm = input(
            "WARNING: This will delete all WritersInn data. Are you sure? (yes/no): "
        )
        if confirm.lower() == "yes":
            asyncio.run(reset_db())
        else:
            logger.info("Application Database reset cancelled by user.")
    elif args.action == "list-tables":
        tables = asyncio.run(list_tables())
        if tables:
            print("\n".join(tables))
        else:
            print("No tables found.")
