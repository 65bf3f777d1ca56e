"""Standalone migration script export."""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from pgmig.core.patterns import like_to_regex
from pgmig.models.connection import ConnectionDescriptor

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
SCRIPT_TEMPLATE = "migrate_script.py.j2"
DEFAULT_BATCH_SIZE = 1000


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined
    )
    # Values are embedded as Python literals so quotes in passwords or
    # patterns cannot break out of the generated source.
    env.filters['pyrepr'] = repr
    return env


def render_script(
    source: ConnectionDescriptor,
    destination: ConnectionDescriptor,
    table_pattern: Optional[str] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    generated_at: Optional[datetime] = None
) -> str:
    """Render a self-contained Python program that performs the migration.

    The program re-discovers tables and columns when it runs, applies the
    same system-table exclusion and LIKE translation as the live service,
    recreates each table, copies rows in batches and commits per table.
    Credentials are embedded in clear text.

    Args:
        source: Source connection descriptor
        destination: Destination connection descriptor
        table_pattern: Optional LIKE-style filter
        batch_size: Rows per INSERT batch
        generated_at: Timestamp written into the header (default: now)

    Returns:
        Python source text
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    pattern = table_pattern or None
    generated_at = generated_at or datetime.now(timezone.utc)
    text = _environment().get_template(SCRIPT_TEMPLATE).render(
        source=source,
        destination=destination,
        table_pattern=pattern,
        table_regex=like_to_regex(pattern) if pattern else None,
        batch_size=int(batch_size),
        generated_at=generated_at.isoformat()
    )
    logger.info("Rendered migration script for pattern %r", pattern or '%')
    return text
