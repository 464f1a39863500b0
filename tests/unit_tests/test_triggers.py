"""Unit tests for the revision trigger SQL."""

from sqlalchemy import Column, Integer, MetaData, Table, create_mock_engine

from model_history import triggers


def test_revision_trigger_statements_exact_text():
    """Test: Statements are emitted verbatim, in drop -> function -> trigger order."""
    assert triggers.revision_trigger_statements("orders_history") == [
        "DROP TRIGGER IF EXISTS insert_orders_history ON orders_history",
        "CREATE OR REPLACE FUNCTION insert_orders_history() RETURNS TRIGGER AS $$ "
        "BEGIN NEW._revision := (SELECT coalesce(max(_revision),0) FROM orders_history "
        'WHERE "_sourceId" = NEW."_sourceId") + 1; RETURN NEW; END; $$ LANGUAGE plpgsql;',
        "CREATE TRIGGER insert_orders_history BEFORE INSERT ON orders_history "
        "FOR EACH ROW EXECUTE PROCEDURE insert_orders_history()",
    ]


def test_drop_function_sql():
    assert triggers.drop_function_sql("orders_history") == "DROP FUNCTION IF EXISTS insert_orders_history()"


def test_trigger_name():
    assert triggers.trigger_name("order_audit") == "insert_order_audit"


def test_register_trigger_ddl_runs_with_create_and_drop():
    """Test: metadata.create_all installs the trigger and drop_all removes the function."""
    metadata = MetaData()
    table = Table("orders_history", metadata, Column("_id", Integer, primary_key=True))
    triggers.register_trigger_ddl(table)

    executed = []

    def executor(sql, *multiparams, **params):
        executed.append(str(sql.compile(dialect=engine.dialect)).strip())

    engine = create_mock_engine("postgresql://", executor)

    metadata.create_all(engine, checkfirst=False)
    assert executed[0].startswith("CREATE TABLE orders_history")
    assert executed[1:] == triggers.revision_trigger_statements("orders_history")

    executed.clear()
    metadata.drop_all(engine, checkfirst=False)
    assert executed == ["DROP TABLE orders_history", "DROP FUNCTION IF EXISTS insert_orders_history()"]


class RecordingOperations:
    """Stand-in for alembic Operations that records executed SQL."""

    def __init__(self):
        self.executed = []

    def execute(self, sql):
        self.executed.append(sql)


def test_create_revision_trigger_runs_statements_in_order():
    op = RecordingOperations()

    triggers.create_revision_trigger(op, "orders_history")

    assert op.executed == triggers.revision_trigger_statements("orders_history")


def test_drop_revision_trigger_drops_trigger_then_function():
    op = RecordingOperations()

    triggers.drop_revision_trigger(op, "orders_history")

    assert op.executed == [
        "DROP TRIGGER IF EXISTS insert_orders_history ON orders_history",
        "DROP FUNCTION IF EXISTS insert_orders_history()",
    ]
