"""PL/pgSQL revision trigger for history tables.

Each history table gets a BEFORE INSERT trigger that sets ``_revision`` to one
more than the highest revision already stored for the row's ``_sourceId``.
Trigger and function names (``insert_<table>``) are relied on by external
tooling, so the statements below must not change.
"""

import logging

from sqlalchemy import DDL, Table, event

logger = logging.getLogger(__name__)


def trigger_name(table_name: str) -> str:
    return f"insert_{table_name}"


def drop_trigger_sql(table_name: str) -> str:
    return f"DROP TRIGGER IF EXISTS insert_{table_name} ON {table_name}"


def create_function_sql(table_name: str) -> str:
    return (
        f"CREATE OR REPLACE FUNCTION insert_{table_name}() RETURNS TRIGGER AS $$ "
        f"BEGIN NEW._revision := (SELECT coalesce(max(_revision),0) FROM {table_name} "
        f'WHERE "_sourceId" = NEW."_sourceId") + 1; RETURN NEW; END; $$ LANGUAGE plpgsql;'
    )


def create_trigger_sql(table_name: str) -> str:
    return (
        f"CREATE TRIGGER insert_{table_name} BEFORE INSERT ON {table_name} "
        f"FOR EACH ROW EXECUTE PROCEDURE insert_{table_name}()"
    )


def drop_function_sql(table_name: str) -> str:
    return f"DROP FUNCTION IF EXISTS insert_{table_name}()"


def revision_trigger_statements(table_name: str) -> list[str]:
    """Statements that (re)install the revision trigger, in execution order."""
    return [
        drop_trigger_sql(table_name),
        create_function_sql(table_name),
        create_trigger_sql(table_name),
    ]


def register_trigger_ddl(table: Table) -> None:
    """
    Install the trigger whenever the table is created through metadata.

    The function outlives the table, so it is dropped after the table is.
    """
    for statement in revision_trigger_statements(table.name):
        event.listen(table, "after_create", DDL(statement))
    event.listen(table, "after_drop", DDL(drop_function_sql(table.name)))


def create_revision_trigger(op, table_name: str) -> None:
    """
    Install the revision trigger from an alembic migration.

    Args:
        op: alembic ``Operations`` (``alembic.op`` inside a migration)
        table_name: History table name
    """
    logger.debug("Installing revision trigger %s", trigger_name(table_name))
    for statement in revision_trigger_statements(table_name):
        op.execute(statement)


def drop_revision_trigger(op, table_name: str) -> None:
    """Remove the revision trigger and its function from an alembic migration."""
    logger.debug("Dropping revision trigger %s", trigger_name(table_name))
    op.execute(drop_trigger_sql(table_name))
    op.execute(drop_function_sql(table_name))
