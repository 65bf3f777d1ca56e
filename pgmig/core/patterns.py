"""Table name filtering: LIKE-style patterns, system tables and identifiers."""
import logging
import re
from typing import Iterable, List, Optional

from pgmig.core.errors import InvalidIdentifierError

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
SYSTEM_TABLE_PREFIXES = ('pg_', 'information_schema')

# Regex metacharacters that must be escaped before wildcard substitution.
# ``%`` and ``_`` are deliberately absent: they are the LIKE wildcards.
_REGEX_SPECIALS = re.compile(r'([.+*?^${}()|\[\]\\])')


def like_to_regex(pattern: str) -> str:
    """Translate a SQL LIKE pattern into an anchored regular expression.

    Regex metacharacters are escaped first, then ``%`` becomes ``.*`` and
    ``_`` becomes ``.``.
    """
    escaped = _REGEX_SPECIALS.sub(r'\\\1', pattern)
    return '^' + escaped.replace('%', '.*').replace('_', '.') + '$'


def matches_pattern(table_name: str, pattern: Optional[str]) -> bool:
    """Case-insensitive, anchored LIKE match.

    An empty pattern matches everything. If the pattern cannot be compiled
    the match fails open and returns True.
    """
    if not pattern:
        return True
    try:
        regex = re.compile(like_to_regex(pattern), re.IGNORECASE)
    except (re.error, TypeError) as e:
        logger.warning("Could not compile table pattern %r, matching all tables: %s", pattern, e)
        return True
    return regex.fullmatch(table_name) is not None


def is_system_table(table_name: str) -> bool:
    """True for catalog tables that must never be migrated."""
    return table_name.startswith(SYSTEM_TABLE_PREFIXES)


def filter_tables(
    table_names: Iterable[str],
    pattern: Optional[str] = None,
    selected: Optional[Iterable[str]] = None
) -> List[str]:
    """Apply system-table exclusion, then the pattern, then the allow-list.

    The allow-list narrows the result (intersection); an empty or missing
    allow-list leaves it unchanged. Input order is preserved.
    """
    allowed = set(selected) if selected else None
    result = []
    for name in table_names:
        if is_system_table(name):
            continue
        if not matches_pattern(name, pattern):
            continue
        if allowed is not None and name not in allowed:
            continue
        result.append(name)
    return result


def is_valid_identifier(name: str) -> bool:
    """True if ``name`` can be interpolated into SQL as a quoted identifier."""
    return isinstance(name, str) and IDENTIFIER_RE.fullmatch(name) is not None


def validate_identifier(name: str, kind: str = "table") -> str:
    """Return ``name`` unchanged or raise InvalidIdentifierError."""
    if not is_valid_identifier(name):
        raise InvalidIdentifierError(name, kind)
    return name


def validate_table_names(names: Optional[Iterable[str]]) -> Optional[List[str]]:
    """Check every caller-supplied table name before any query is built.

    Returns the names as a list (None stays None) or raises
    InvalidIdentifierError on the first malformed one.
    """
    if names is None:
        return None
    return [validate_identifier(name) for name in names]


def quote_ident(name: str) -> str:
    """Double-quote an identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'
