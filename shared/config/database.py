import os
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from shared.config import settings

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "marketplace")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# Each service keeps its tables in its own schema to simulate microservice isolation
SERVICE_SCHEMAS = ("order_schema", "message_schema")

IS_SQLITE = DATABASE_URL.startswith("sqlite")

if IS_SQLITE:
    # SQLite has no schemas; NullPool keeps aiosqlite connections off foreign event loops
    engine = create_async_engine(
        DATABASE_URL,
        echo=settings.SQL_ECHO,
        poolclass=NullPool,
        execution_options={"schema_translate_map": {name: None for name in SERVICE_SCHEMAS}},
    )
else:
    engine = create_async_engine(DATABASE_URL, echo=settings.SQL_ECHO)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; every stored datetime uses this clock."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def create_schemas(conn, *names: str):
    if IS_SQLITE:
        return
    for name in names:
        await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {name}"))


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
