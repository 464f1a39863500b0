"""Service layer wiring a history model to its source model.

Previous values are captured from the source mapper's ``before_update`` event
and the history row is written from ``after_update``, both on the connection
of the flush that updates the source row. A failed insert therefore fails the
flush, and with it the update.
"""

import logging
import weakref
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper, relationship

logger = logging.getLogger(__name__)


def associate(history_model: type, source_model: type) -> type:
    """
    Associate the history model to the source model.

    History rows belong to their source row (``history.source``); deleting the
    source row deletes its history through the ``ON DELETE CASCADE`` foreign key,
    and changing its id attribute follows through ``ON UPDATE CASCADE``.
    """
    sa.inspect(history_model).add_property(
        "source",
        relationship(
            source_model,
            foreign_keys=[history_model.__table__.c["_sourceId"]],
        ),
    )
    return history_model


def changed_fields(instance: Any) -> list[str]:
    """Column attribute keys modified on instance since it was last flushed."""
    state = sa.inspect(instance)
    return [attr.key for attr in state.mapper.column_attrs if state.attrs[attr.key].history.has_changes()]


def previous_values(instance: Any, fields: list[str]) -> dict[str, Any]:
    """
    Values fields held before the pending changes, as far as the session knows.

    An attribute that was expired (and possibly then assigned) has no known
    previous value and is left out.
    """
    state = sa.inspect(instance)
    values = {}
    for key in fields:
        history = state.attrs[key].history
        if history.deleted:
            values[key] = history.deleted[0]
        elif history.unchanged:
            values[key] = history.unchanged[0]
    return values


def load_values(connection: Connection, instance: Any, fields: list[str]) -> dict[str, Any]:
    """Select fields from the stored row of instance, by primary key."""
    state = sa.inspect(instance)
    mapper = state.mapper
    columns = [mapper.column_attrs[key].columns[0].label(key) for key in fields]
    criteria = [column == value for column, value in zip(mapper.primary_key, state.identity)]
    row = connection.execute(sa.select(*columns).where(*criteria)).mappings().one()
    return dict(row)


def capture_previous(connection: Connection, history_model: type, instance: Any) -> dict[str, Any]:
    """
    Collect the previous tracked values and the source id of instance.

    Must run before the UPDATE is emitted: values the session does not hold
    are read from the stored row.

    Args:
        connection: The connection of the running flush
        history_model: The history model
        instance: The source instance about to be updated

    Returns:
        Tracked field values plus ``_sourceId``
    """
    options = history_model.__history_options__
    state = sa.inspect(instance)

    record = previous_values(instance, options.track)
    missing = [key for key in options.track if key not in record]

    id_history = state.attrs[options.id_attr].history
    current_id = id_history.added or id_history.unchanged
    if not current_id and options.id_attr not in missing:
        missing.append(options.id_attr)

    loaded = load_values(connection, instance, missing) if missing else {}
    record.update((key, loaded[key]) for key in options.track if key in loaded)
    record["_sourceId"] = current_id[0] if current_id else loaded[options.id_attr]
    return record


def write_history(connection: Connection, history_model: type, instance: Any, previous: dict[str, Any]) -> None:
    """
    Write a history row for an updated source instance.

    Args:
        connection: The connection of the running flush
        history_model: The history model
        instance: The source instance that was just updated
        previous: Output of capture_previous for this update
    """
    options = history_model.__history_options__

    record = dict(previous)
    record.update(
        {
            "_date": datetime.now(timezone.utc),
            "_changes": changed_fields(instance),
        }
    )
    if options.user is not None:
        record["_user"] = options.user(instance)

    connection.execute(history_model.__table__.insert().values(record))
    logger.debug(
        "Wrote %s history for %s=%s: %s",
        options.model_name,
        options.id_attr,
        record["_sourceId"],
        record["_changes"],
    )


def register_hooks(history_model: type, source_model: type) -> type:
    """
    Write history after every update of source_model that touches a tracked field.
    """
    tracked = set(history_model.__history_options__.track)
    # instance state -> values captured before its UPDATE
    pending: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def before_update(mapper: Mapper, connection: Connection, target: Any) -> None:
        if tracked.intersection(changed_fields(target)):
            pending[sa.inspect(target)] = capture_previous(connection, history_model, target)

    def after_update(mapper: Mapper, connection: Connection, target: Any) -> None:
        previous = pending.pop(sa.inspect(target), None)
        if previous is not None:
            write_history(connection, history_model, target, previous)
        else:
            logger.debug("No tracked field changed on %r, skipping history", target)

    event.listen(source_model, "before_update", before_update)
    event.listen(source_model, "after_update", after_update)
    return history_model
