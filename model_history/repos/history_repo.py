"""Repository for history model queries."""

from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def list_history(
    session: AsyncSession,
    history_model: type,
    *,
    source_id: Any,
) -> list:
    """
    List all history rows for a source row, newest revision first.

    Args:
        session: Database session
        history_model: History model returned by attach
        source_id: Id of the source row

    Returns:
        List of history rows, ordered by _revision DESC
    """
    query = (
        select(history_model)
        .where(history_model._sourceId == source_id)
        .order_by(desc(history_model._revision))
    )

    result = await session.execute(query)
    return list(result.scalars().all())


async def get_revision(
    session: AsyncSession,
    history_model: type,
    *,
    source_id: Any,
    revision: int,
):
    """
    Get one revision of a source row.

    Returns:
        The history row if found, None otherwise
    """
    query = select(history_model).where(
        history_model._sourceId == source_id,
        history_model._revision == revision,
    )

    result = await session.execute(query)
    return result.scalar_one_or_none()


async def count_history(
    session: AsyncSession,
    history_model: type,
    *,
    source_id: Any,
) -> int:
    query = select(func.count()).select_from(history_model).where(history_model._sourceId == source_id)
    result = await session.execute(query)
    return result.scalar_one()
