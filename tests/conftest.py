"""Pytest configuration and fixtures."""

import asyncio
import sys

import pytest
import pytest_asyncio
from sqlalchemy import Integer, String, Text, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, declarative_base, mapped_column
from sqlalchemy.pool import NullPool

from model_history import history, setup_logging
from model_history.config import settings

# Fix Windows asyncio event loop
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


def pytest_configure(config):
    setup_logging()


def _make_order_model(tablename: str = "orders"):
    """Build an Order model on a fresh declarative base."""
    Base = declarative_base()

    class Order(Base):
        __tablename__ = tablename

        id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
        code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
        status: Mapped[str] = mapped_column(String(50), nullable=False, default="new")
        total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
        note: Mapped[str | None] = mapped_column(Text, nullable=True)

    return Order


@pytest.fixture
def make_order_model():
    """Factory for fresh, unattached Order models."""
    return _make_order_model


@pytest_asyncio.fixture
async def engine():
    """Async engine for the test database; skips when it is unreachable."""
    engine = create_async_engine(settings.DATABASE_URL, echo=False, poolclass=NullPool)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (DBAPIError, OSError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not available: {exc}")

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def attach_history(engine, db_session):
    """
    Factory that attaches history to a fresh Order model and creates its tables.

    Tables are dropped after the test, once the session has released its
    connection.
    """
    metadatas = []

    async def _attach(*args, create: bool = True, **kwargs):
        Order = _make_order_model()
        OrderHistory = history(*args, **kwargs)(Order)
        metadatas.append(Order.metadata)

        async with engine.begin() as conn:
            await conn.run_sync(Order.metadata.drop_all)
            if create:
                await conn.run_sync(Order.metadata.create_all)
            else:
                await conn.run_sync(Order.__table__.create)
        return Order, OrderHistory

    yield _attach

    await db_session.close()
    async with engine.begin() as conn:
        for metadata in metadatas:
            await conn.run_sync(metadata.drop_all)
