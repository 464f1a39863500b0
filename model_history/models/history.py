"""History model construction.

A history model is a declarative class mapped next to its source model (same
registry, same metadata). It holds one row per snapshot: the tracked source
columns plus the meta columns below, all prefixed with ``_`` to limit
conflicts with source attribute names.
"""

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, select, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from model_history.errors import FieldCollisionError, InvalidIdAttributeError, UnknownTrackedFieldError
from model_history.options import HistoryOptions
from model_history.triggers import register_trigger_ddl, revision_trigger_statements

logger = logging.getLogger(__name__)

META_COLUMNS = ("_id", "_sourceId", "_revision", "_user", "_date", "_changes")

# attributes HistoryMixin and the association put on every history class
RESERVED_ATTRIBUTES = ("source", "restore", "sync")


class HistoryMixin:
    """Behaviour shared by every generated history model.

    Generated classes set ``__history_options__`` and ``__source_model__``.
    """

    async def restore(self, session: AsyncSession) -> Any:
        """
        Copy this revision's tracked values back onto the source row.

        The source row is flushed, so the update is itself recorded as a new
        revision.

        Args:
            session: Database session

        Returns:
            The updated source instance

        Raises:
            sqlalchemy.exc.NoResultFound: If the source row no longer exists
        """
        options = self.__history_options__
        source_model = self.__source_model__
        id_column = getattr(source_model, options.id_attr)

        result = await session.execute(select(source_model).where(id_column == self._sourceId))
        source = result.scalar_one()

        for key in options.track:
            setattr(source, key, getattr(self, key))
        await session.flush()
        return source

    @classmethod
    async def sync(cls, conn: AsyncConnection) -> None:
        """
        Create the history table if needed and (re)install its revision trigger.

        Args:
            conn: Connection inside an open transaction (``engine.begin()``)
        """
        table = cls.__table__
        await conn.run_sync(table.create, checkfirst=True)
        for statement in revision_trigger_statements(table.name):
            await conn.execute(text(statement))
        logger.debug("Synced history table %s", table.name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._sourceId}@{self._revision}>"


def _history_column(key: str, column: Column) -> Column:
    """Nullable copy of a tracked column, keeping only its type."""
    return Column(key, column.type.copy(), nullable=True)


def _meta_columns(id_column: Column) -> dict[str, Column]:
    return {
        # a rolling unique id so the history row has its own primary key
        "_id": Column("_id", Integer, primary_key=True, autoincrement=True),
        # the id of the tracked row
        "_sourceId": Column(
            "_sourceId",
            id_column.type.copy(),
            ForeignKey(id_column, ondelete="CASCADE", onupdate="CASCADE"),
            nullable=False,
        ),
        # a rolling revision number per tracked id, set by the insert trigger
        "_revision": Column("_revision", Integer),
        # a username or id; filled by the `user` option when configured
        "_user": Column("_user", String),
        # timestamp of the change
        "_date": Column("_date", DateTime(timezone=True)),
        # the fields that were changed to trigger the history row
        "_changes": Column("_changes", ARRAY(String)),
    }


def build_history_model(model: type, options: HistoryOptions) -> type:
    """
    Build and map the history model for a source model.

    Args:
        model: The mapped source class
        options: Resolved history options

    Returns:
        The new mapped history class

    Raises:
        InvalidIdAttributeError: If id_attr is not a column attribute of model
        UnknownTrackedFieldError: If a tracked field is not a column attribute
        FieldCollisionError: If a tracked field reuses a history attribute name
    """
    mapper = sa.inspect(model)
    column_attrs = mapper.column_attrs

    if options.id_attr not in column_attrs:
        raise InvalidIdAttributeError(model.__name__, options.id_attr)
    id_column = column_attrs[options.id_attr].columns[0]

    unknown = [key for key in options.track if key not in column_attrs]
    if unknown:
        raise UnknownTrackedFieldError(model.__name__, unknown)

    collisions = [key for key in options.track if key in META_COLUMNS or key in RESERVED_ATTRIBUTES]
    if collisions:
        raise FieldCollisionError(model.__name__, collisions)

    attrs: dict[str, Any] = {
        key: _history_column(key, column_attrs[key].columns[0]) for key in options.track
    }
    attrs.update(_meta_columns(id_column))
    attrs.update(
        {
            "__tablename__": options.table_name,
            "__table_args__": (
                UniqueConstraint("_sourceId", "_revision", name=f"ux_{options.table_name}_source_revision"),
                Index(f"ix_{options.table_name}_source_id", "_sourceId"),
            ),
            "__history_options__": options,
            "__source_model__": model,
            "__module__": model.__module__,
        }
    )

    history_model = type(options.model_name, (HistoryMixin,), attrs)
    model.registry.map_declaratively(history_model)
    register_trigger_ddl(history_model.__table__)

    model.__history_class__ = history_model
    return history_model
