"""Read-only guard for ad hoc queries."""
import logging

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from pgmig.core.errors import UnsafeQueryError

logger = logging.getLogger(__name__)

# Node types that write, change schema or escape the parser. Looked up by
# name because sqlglot renames some of them between releases.
_FORBIDDEN_NODE_NAMES = (
    'Insert', 'Update', 'Delete', 'Merge', 'Create', 'Drop', 'Alter',
    'AlterTable', 'TruncateTable', 'Command', 'Into', 'Copy', 'Set',
    'Grant', 'Transaction', 'Commit', 'Rollback', 'Lock',
)
FORBIDDEN_NODES = tuple(
    getattr(exp, name) for name in _FORBIDDEN_NODE_NAMES if hasattr(exp, name)
)

_READ_ROOT_NAMES = ('Select', 'Union', 'Intersect', 'Except', 'SetOperation')
READ_ROOTS = tuple(getattr(exp, name) for name in _READ_ROOT_NAMES if hasattr(exp, name))

REJECTION_MESSAGE = (
    "Only SELECT queries are allowed for safety. Use row operations for modifications."
)


def has_select_prefix(query: str) -> bool:
    """Case-insensitive check that the trimmed query starts with SELECT."""
    return isinstance(query, str) and query.strip().upper().startswith('SELECT')


def ensure_read_only(query: str) -> str:
    """Validate that ``query`` is a single read-only SELECT.

    The lexical prefix check runs first. The query is then parsed with the
    postgres dialect and rejected if it holds more than one statement, is
    not a SELECT or set operation, or contains any writing node anywhere in
    its tree (for example ``SELECT ... INTO``). Unparseable text is rejected.

    Returns:
        The trimmed query

    Raises:
        UnsafeQueryError: If the query is not accepted
    """
    if not has_select_prefix(query):
        raise UnsafeQueryError(REJECTION_MESSAGE)

    text = query.strip()
    try:
        statements = [s for s in sqlglot.parse(text, read='postgres') if s is not None]
    except SqlglotError as e:
        logger.info("Rejected unparseable query: %s", e)
        raise UnsafeQueryError(f"Query could not be parsed: {e}") from e

    if len(statements) != 1:
        raise UnsafeQueryError("Only a single SELECT statement is allowed.")

    statement = statements[0]
    if not isinstance(statement, READ_ROOTS):
        raise UnsafeQueryError(REJECTION_MESSAGE)

    for node in statement.walk():
        # walk() yields bare nodes in newer sqlglot, tuples in older releases
        if isinstance(node, tuple):
            node = node[0]
        if isinstance(node, FORBIDDEN_NODES):
            raise UnsafeQueryError(
                f"{type(node).__name__.upper()} is not allowed in a read-only query."
            )

    return text
