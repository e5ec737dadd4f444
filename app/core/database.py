# app/core/database.py

import ssl
from typing import AsyncGenerator

from loguru import logger
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool
from sqlalchemy import text

from app.core.config import settings


# ----------------------------------------------------
# SSL for Supabase Pooler
# ----------------------------------------------------
def make_ssl():
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def build_connect_args(url: str) -> dict:
    """
    asyncpg behind a transaction pooler must not use prepared statements.
    Other drivers (aiosqlite in tests) take no extra arguments.
    """
    if not url.startswith("postgresql+asyncpg"):
        return {}

    connect_args = {
        "statement_cache_size": 0,            # disable prepared statements
        "prepared_statement_name_func": None, # prevent SQLAlchemy from naming statements
    }
    if settings.DB_SSL:
        connect_args["ssl"] = make_ssl()
    return connect_args


logger.info("Configuring database engine")


# ----------------------------------------------------
# Engine (NO POOLING → external pooler handles it)
# ----------------------------------------------------
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    connect_args=build_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
    poolclass=NullPool,
)


# ----------------------------------------------------
# Sessions
# ----------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ----------------------------------------------------
# Create tables
# ----------------------------------------------------
def _register_models():
    # Table classes must be imported before create_all / drop_all
    from app.models import otp, publication, user, user_log  # noqa: F401


async def init_db():
    _register_models()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def drop_db():
    _register_models()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


# ----------------------------------------------------
# Test Connection
# ----------------------------------------------------
async def test_connection():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        logger.info("DB connection OK")
