"""Common test fixtures."""
# pylint: disable=redefined-outer-name,too-many-arguments,too-many-positional-arguments
import re

import pytest

from pgmig.core.browse import COLUMN_TYPES_QUERY
from pgmig.core.errors import DatabaseConnectionError
from pgmig.core.introspect import (
    ALL_COLUMNS_QUERY,
    TABLE_COLUMNS_QUERY,
    TABLE_NAMES_QUERY,
    TABLE_STATS_QUERY,
)
from pgmig.database.base import DatabaseAdapter
from pgmig.models.connection import ConnectionDescriptor
from pgmig.models.schema import ColumnSchema

_SELECT_ALL_RE = re.compile(r'^SELECT \* FROM "([^"]+)"')
_COUNT_RE = re.compile(r'^SELECT COUNT\(\*\) FROM "([^"]+)"')


class FakeDatabase(DatabaseAdapter):
    """In-memory stand-in for a PostgreSQL connection.

    Answers the introspection queries from registered tables and records
    every statement it is asked to run. ``fail_on`` maps a SQL substring to
    the exception raised when a statement containing it is executed.
    """

    def __init__(self, side="database"):
        self.side = side
        self.tables = {}
        self.executed = []
        self.queries = []
        self.fail_on = {}
        self.fetch_results = {}
        self.closed = False
        self.descriptor = None

    def add_table(self, name, columns, rows=None, row_count=None, size_bytes=0):
        """Register a table with its columns and rows."""
        rows = list(rows or [])
        self.tables[name] = {
            'columns': sorted(columns, key=lambda c: c.ordinal_position),
            'rows': rows,
            'row_count': len(rows) if row_count is None else row_count,
            'size_bytes': size_bytes,
        }
        return self

    async def connect(self, descriptor):
        self.descriptor = descriptor

    def _check_failure(self, query):
        for fragment, exc in self.fail_on.items():
            if fragment in query:
                raise exc

    def _column_rows(self, table_name):
        return [
            {
                'table_name': table_name,
                'column_name': c.column_name,
                'data_type': c.data_type,
                'is_nullable': 'YES' if c.is_nullable else 'NO',
                'column_default': c.default,
                'character_maximum_length': c.max_length,
                'ordinal_position': c.ordinal_position,
                'is_primary_key': c.is_primary_key,
            }
            for c in self.tables[table_name]['columns']
        ]

    async def fetch(self, query, *args):
        self.queries.append((query, args))
        self._check_failure(query)

        if query == TABLE_NAMES_QUERY:
            return [{'table_name': name} for name in sorted(self.tables)]
        if query == TABLE_STATS_QUERY:
            return [
                {'table_name': name, 'row_count': t['row_count'], 'size_bytes': t['size_bytes']}
                for name, t in sorted(self.tables.items())
            ]
        if query == ALL_COLUMNS_QUERY:
            return [row for name in sorted(self.tables) for row in self._column_rows(name)]
        if query == TABLE_COLUMNS_QUERY:
            return self._column_rows(args[0]) if args[0] in self.tables else []
        if query == COLUMN_TYPES_QUERY:
            if args[0] not in self.tables:
                return []
            return [
                {'column_name': c.column_name, 'udt_schema': 'pg_catalog', 'udt_name': c.data_type}
                for c in self.tables[args[0]]['columns']
            ]

        for fragment, result in self.fetch_results.items():
            if fragment in query:
                return result

        match = _SELECT_ALL_RE.match(query)
        if match and match.group(1) in self.tables:
            rows = [dict(r) for r in self.tables[match.group(1)]['rows']]
            if 'LIMIT' in query:
                limit, offset = args[-2], args[-1]
                rows = rows[offset:offset + limit]
            return rows
        return []

    async def fetchrow(self, query, *args):
        self.queries.append((query, args))
        self._check_failure(query)
        if 'pg_stat_user_tables' in query and args and args[0] in self.tables:
            table = self.tables[args[0]]
            return {'row_count': table['row_count'], 'size_bytes': table['size_bytes']}
        return None

    async def fetchval(self, query, *args):
        self.queries.append((query, args))
        self._check_failure(query)
        match = _COUNT_RE.match(query)
        if match and match.group(1) in self.tables:
            return len(self.tables[match.group(1)]['rows'])
        if query == "SELECT 1":
            return 1
        return None

    async def execute(self, query, *args):
        self._check_failure(query)
        self.executed.append((query, args))
        if query.startswith("DELETE"):
            return "DELETE 1"
        if query.startswith("INSERT"):
            return "INSERT 0 1"
        return "OK"

    async def close(self):
        self.closed = True

    @property
    def statements(self):
        """Executed SQL text, in order."""
        return [sql for sql, _ in self.executed]


@pytest.fixture
def column_factory():
    """Factory to create ColumnSchema instances for testing."""
    def _make_column(
        column_name="id",
        data_type="integer",
        is_nullable=True,
        default=None,
        max_length=None,
        ordinal_position=1,
        is_primary_key=False
    ):
        return ColumnSchema(
            column_name=column_name,
            data_type=data_type,
            is_nullable=is_nullable,
            default=default,
            max_length=max_length,
            ordinal_position=ordinal_position,
            is_primary_key=is_primary_key
        )
    return _make_column


@pytest.fixture
def orders_columns(column_factory):
    """Columns of an ``orders`` table: serial id, nullable note."""
    return [
        column_factory(
            column_name="id",
            data_type="integer",
            is_nullable=False,
            default="nextval('orders_id_seq'::regclass)",
            ordinal_position=1,
            is_primary_key=True
        ),
        column_factory(
            column_name="note",
            data_type="character varying",
            max_length=50,
            ordinal_position=2
        ),
    ]


@pytest.fixture
def fake_db_factory():
    """Factory to create empty FakeDatabase instances."""
    def _make_db(side="database"):
        return FakeDatabase(side=side)
    return _make_db


@pytest.fixture
def source_db(orders_columns, column_factory):
    """Source database holding ``orders`` (2 rows) and ``users`` (1 row)."""
    db = FakeDatabase(side="source")
    db.add_table(
        "orders",
        orders_columns,
        rows=[{"id": 1, "note": "a"}, {"id": 2, "note": None}],
        size_bytes=16384
    )
    db.add_table(
        "users",
        [column_factory(column_name="id", ordinal_position=1, is_primary_key=True),
         column_factory(column_name="email", data_type="text", ordinal_position=2)],
        rows=[{"id": 7, "email": "x@example.com"}],
        size_bytes=8192
    )
    return db


@pytest.fixture
def destination_db():
    """Empty destination database."""
    return FakeDatabase(side="destination")


@pytest.fixture
def descriptor_factory():
    """Factory to create ConnectionDescriptor instances for testing."""
    def _make_descriptor(database="app", password="secret", connection_string=None):
        if connection_string:
            return ConnectionDescriptor(connection_string=connection_string)
        return ConnectionDescriptor(
            host="localhost",
            port=5432,
            database=database,
            user="postgres",
            password=password
        )
    return _make_descriptor


@pytest.fixture
def fake_connector(source_db, destination_db):
    """Connection factory serving the fake source and destination.

    Sides listed in ``connector.failing`` raise DatabaseConnectionError.
    """
    dbs = {"source": source_db, "destination": destination_db}

    async def _connect(descriptor, side="database"):
        if side in _connect.failing:
            raise DatabaseConnectionError(side, "password authentication failed")
        db = dbs[side]
        await db.connect(descriptor)
        _connect.opened.append(side)
        return db

    _connect.failing = set()
    _connect.opened = []
    return _connect
