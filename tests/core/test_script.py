"""Tests for the standalone script export."""
import ast
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from pgmig.core.ddl import render_create
from pgmig.core.patterns import filter_tables
from pgmig.core.script import render_script

TABLE_NAMES = [
    "a.b", "aXb", "a*b", "aab", "t?", "tx", "t", "x\\y", "xy", "u",
    "users", "user_roles", "orders", "ORDERS_2024", "tb_users",
    "pg_class", "information_schema_x",
]


def _assignments(script):
    """Top-level constant assignments of the generated program."""
    tree = ast.parse(script)
    values = {}
    for node in tree.body:
        if isinstance(node, ast.Assign) and isinstance(node.targets[0], ast.Name):
            try:
                values[node.targets[0].id] = ast.literal_eval(node.value)
            except ValueError:
                continue
    return values


def _load_program(script):
    """Execute the generated program as a module with psycopg2 mocked out."""
    psycopg2 = MagicMock()
    modules = {
        "psycopg2": psycopg2,
        "psycopg2.sql": psycopg2.sql,
        "psycopg2.extensions": psycopg2.extensions,
        "psycopg2.extras": psycopg2.extras,
    }
    namespace = {"__name__": "exported_migration"}
    with patch.dict(sys.modules, modules):
        exec(compile(script, "migrate.py", "exec"), namespace)  # pylint: disable=exec-used
    return namespace
def test_render_script_is_valid_python(descriptor_factory):
    """Test that the output parses and embeds the configuration."""
    script = render_script(
        descriptor_factory(database="old"),
        descriptor_factory(database="new"),
        "user_%",
        batch_size=500,
        generated_at=datetime(2024, 5, 1, tzinfo=timezone.utc)
    )

    values = _assignments(script)
    assert values["SOURCE_CONFIG"]["database"] == "old"
    assert values["DEST_CONFIG"]["database"] == "new"
    assert values["SOURCE_CONFIG"]["port"] == 5432
    assert values["TABLE_PATTERN"] == "user_%"
    assert values["TABLE_REGEX"] == "^user..*$"
    assert values["BATCH_SIZE"] == 500
    assert "2024-05-01T00:00:00+00:00" in script
    assert "WARNING" in script


def test_render_script_escapes_credentials(descriptor_factory):
    """Test that quotes in a password cannot break the program."""
    password = 'p\'a"ss\\word"""'
    script = render_script(descriptor_factory(password=password), descriptor_factory())

    assert _assignments(script)["SOURCE_CONFIG"]["password"] == password


def test_render_script_without_pattern(descriptor_factory):
    """Test that no pattern means every table."""
    values = _assignments(render_script(descriptor_factory(), descriptor_factory(), ""))
    assert values["TABLE_PATTERN"] is None
    assert values["TABLE_REGEX"] is None


def test_render_script_with_connection_string(descriptor_factory):
    """Test URI descriptors."""
    url = "postgresql://u:p@db:5432/app"
    values = _assignments(render_script(
        descriptor_factory(connection_string=url), descriptor_factory()
    ))
    assert values["SOURCE_CONFIG"]["dsn"] == url
    assert values["SOURCE_CONFIG"]["host"] is None


def test_render_script_rejects_bad_batch_size(descriptor_factory):
    """Test batch size validation."""
    with pytest.raises(ValueError):
        render_script(descriptor_factory(), descriptor_factory(), batch_size=0)


@pytest.mark.parametrize("pattern", [
    "a.b", "a*b", "t?", "x\\y", "_", "%", "user_%", "ord%", "tb_%", "", None,
])
def test_exported_filter_agrees_with_service(descriptor_factory, pattern):
    """Test that the program selects exactly the tables the service would."""
    program = _load_program(render_script(descriptor_factory(), descriptor_factory(), pattern))

    exported = [
        name for name in TABLE_NAMES
        if not program["is_system_table"](name) and program["matches_pattern"](name)
    ]

    assert exported == filter_tables(TABLE_NAMES, pattern)


def test_exported_ddl_matches_service(descriptor_factory, orders_columns, column_factory):
    """Test that the program's CREATE TABLE is byte-identical to the service's."""
    program = _load_program(render_script(descriptor_factory(), descriptor_factory()))
    columns = orders_columns + [
        column_factory(column_name="total", data_type="numeric", default="0", ordinal_position=3),
    ]
    # Shape of information_schema.columns rows fetched by the program
    metadata = [
        (c.column_name, c.data_type, "YES" if c.is_nullable else "NO", c.default, c.max_length)
        for c in columns
    ]

    assert program["render_create"]("orders", metadata) == render_create("orders", columns)
    assert program["render_create"]("empty", []) == render_create("empty", [])


def test_exported_copy_of_zero_column_table(descriptor_factory):
    """Test that a zero-column table gets one DEFAULT VALUES row per source row."""
    program = _load_program(render_script(descriptor_factory(), descriptor_factory()))
    source_conn = MagicMock()
    source_conn.cursor.return_value.__enter__.return_value.fetchone.return_value = (3,)
    dest_cur = MagicMock()

    copied = program["copy_table"](source_conn, dest_cur, "empty", [])

    assert copied == 3
    assert dest_cur.execute.call_count == 3
