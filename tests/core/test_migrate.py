"""Tests for the live migration executor."""
import pytest

from pgmig.core.errors import InvalidIdentifierError
from pgmig.core.migrate import copy_rows, execute_migration, migrate_table, should_copy_data
from pgmig.models.migration import MigrationStatus


def test_should_copy_data_defaults_to_true():
    """Test the data copy flag semantics."""
    assert should_copy_data("orders", None)
    assert should_copy_data("orders", {})
    assert should_copy_data("orders", {"users": False})
    assert should_copy_data("orders", {"orders": True})
    assert not should_copy_data("orders", {"orders": False})


@pytest.mark.asyncio
async def test_migrate_orders_scenario(source_db, destination_db):
    """Test drop, create and two inserts for the orders table."""
    outcomes = await execute_migration(source_db, destination_db, table_pattern="orders")

    assert [o.to_dict() for o in outcomes] == [
        {"table": "orders", "status": "success", "rowsCopied": 2}
    ]
    statements = destination_db.statements
    assert statements[0] == 'DROP TABLE IF EXISTS "orders" CASCADE;'
    assert statements[1].startswith('CREATE TABLE "orders" (')
    assert destination_db.executed[2:] == [
        ('INSERT INTO "orders" ("id", "note") VALUES ($1, $2)', (1, "a")),
        ('INSERT INTO "orders" ("id", "note") VALUES ($1, $2)', (2, None)),
    ]


@pytest.mark.asyncio
async def test_migration_continues_after_table_failure(source_db, destination_db):
    """Test per-table isolation: one failing table does not stop the run."""
    destination_db.fail_on['CREATE TABLE "orders"'] = RuntimeError("type \"foo\" does not exist")

    outcomes = await execute_migration(source_db, destination_db)

    assert [(o.table, o.status) for o in outcomes] == [
        ("orders", MigrationStatus.ERROR),
        ("users", MigrationStatus.SUCCESS),
    ]
    assert outcomes[0].rows_copied is None
    assert "does not exist" in outcomes[0].error
    assert outcomes[1].rows_copied == 1
    # No copy is attempted for a table whose CREATE failed
    assert not any(s.startswith('INSERT INTO "orders"') for s in destination_db.statements)


@pytest.mark.asyncio
async def test_copy_failure_keeps_earlier_rows(source_db, destination_db):
    """Test that a failure mid-copy reports an error without rollback."""
    calls = {"n": 0}
    original = destination_db.execute

    async def flaky_execute(query, *args):
        if query.startswith("INSERT"):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("duplicate key value")
        return await original(query, *args)

    destination_db.execute = flaky_execute
    outcome = await migrate_table(source_db, destination_db, "orders")

    assert outcome.status == MigrationStatus.ERROR
    assert outcome.error == "duplicate key value"
    inserts = [s for s in destination_db.statements if s.startswith("INSERT")]
    assert len(inserts) == 1


@pytest.mark.asyncio
async def test_structure_only_when_flag_is_false(source_db, destination_db):
    """Test that a False data flag skips the copy and reports zero rows."""
    outcomes = await execute_migration(
        source_db, destination_db, table_data_flags={"orders": False}
    )

    by_table = {o.table: o for o in outcomes}
    assert by_table["orders"].rows_copied == 0
    assert by_table["users"].rows_copied == 1
    assert not any(s.startswith('INSERT INTO "orders"') for s in destination_db.statements)


@pytest.mark.asyncio
async def test_selected_tables_intersect_pattern(source_db, destination_db):
    """Test that the allow-list narrows discovery."""
    outcomes = await execute_migration(
        source_db, destination_db, table_pattern="%", selected_tables=["users", "ghost"]
    )
    assert [o.table for o in outcomes] == ["users"]


@pytest.mark.asyncio
async def test_no_matching_tables(source_db, destination_db):
    """Test that an empty match performs no statements."""
    outcomes = await execute_migration(source_db, destination_db, table_pattern="zzz%")
    assert outcomes == []
    assert destination_db.executed == []


@pytest.mark.asyncio
async def test_invalid_table_name_never_reaches_sql(source_db, destination_db, column_factory):
    """Test that a malicious table name fails before any statement is built."""
    name = 'x"; DROP TABLE users; --'
    source_db.add_table(name, [column_factory()])

    outcome = await migrate_table(source_db, destination_db, name)

    assert outcome.status == MigrationStatus.ERROR
    assert "Invalid table name" in outcome.error
    assert destination_db.executed == []


@pytest.mark.asyncio
async def test_copy_rows_binds_nulls_for_missing_keys(source_db, destination_db, orders_columns):
    """Test that every insert names the full column list."""
    source_db.tables["orders"]["rows"] = [{"id": 3}]

    copied = await copy_rows(source_db, destination_db, "orders", orders_columns)

    assert copied == 1
    assert destination_db.executed == [
        ('INSERT INTO "orders" ("id", "note") VALUES ($1, $2)', (3, None))
    ]


@pytest.mark.asyncio
async def test_copy_rows_without_columns(source_db, destination_db):
    """Test a zero-column table."""
    source_db.add_table("empty", [], rows=[{}])

    copied = await copy_rows(source_db, destination_db, "empty", [])

    assert copied == 1
    assert destination_db.statements == ['INSERT INTO "empty" DEFAULT VALUES']


@pytest.mark.asyncio
async def test_three_tables_middle_create_fails(fake_db_factory, column_factory):
    """Test that tables 1 and 3 succeed when table 2's CREATE fails."""
    source = fake_db_factory("source")
    destination = fake_db_factory("destination")
    for name in ("t1", "t2", "t3"):
        source.add_table(name, [column_factory(column_name="select")], rows=[{"select": 1}])
    destination.fail_on['CREATE TABLE "t2"'] = RuntimeError('syntax error at or near "select"')

    outcomes = await execute_migration(source, destination)

    assert [o.to_dict() for o in outcomes] == [
        {"table": "t1", "status": "success", "rowsCopied": 1},
        {"table": "t2", "status": "error", "error": 'syntax error at or near "select"'},
        {"table": "t3", "status": "success", "rowsCopied": 1},
    ]


@pytest.mark.asyncio
async def test_orders_with_total_and_created_at(fake_db_factory, column_factory):
    """Test the ord% scenario end to end against an empty destination."""
    source = fake_db_factory("source")
    destination = fake_db_factory("destination")
    source.add_table("orders", [
        column_factory(column_name="id", data_type="integer", is_nullable=False, ordinal_position=1),
        column_factory(column_name="total", data_type="numeric", default="0", ordinal_position=2),
        column_factory(column_name="created_at", data_type="timestamp without time zone",
                       ordinal_position=3),
    ], rows=[
        {"id": 1, "total": 10, "created_at": None},
        {"id": 2, "total": 0, "created_at": None},
    ])

    outcomes = await execute_migration(source, destination, table_pattern="ord%")

    assert [o.to_dict() for o in outcomes] == [
        {"table": "orders", "status": "success", "rowsCopied": 2}
    ]
    assert destination.statements[1] == (
        'CREATE TABLE "orders" (\n'
        '  "id" integer NOT NULL,\n'
        '  "total" numeric DEFAULT 0,\n'
        '  "created_at" timestamp without time zone\n'
        ');'
    )
    assert [args for _, args in destination.executed[2:]] == [(1, 10, None), (2, 0, None)]


@pytest.mark.asyncio
@pytest.mark.parametrize("options", [
    {"selected_tables": ["users", 'x"; DROP TABLE users; --']},
    {"table_data_flags": {'x"; DROP TABLE users; --': False}},
])
async def test_malformed_allow_list_rejected_before_queries(source_db, destination_db, options):
    """Test that caller-supplied names are validated before discovery runs."""
    with pytest.raises(InvalidIdentifierError):
        await execute_migration(source_db, destination_db, **options)

    assert source_db.queries == []
    assert destination_db.executed == []
