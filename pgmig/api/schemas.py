"""Request bodies for the HTTP API."""
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pgmig.core.patterns import is_valid_identifier
from pgmig.models.browse import MAX_PAGE_SIZE, RowOperation, SortDirection
from pgmig.models.connection import ConnectionDescriptor, DbSide

class ApiModel(BaseModel):
    """Base for request bodies: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

def _check_table_name(value: str) -> str:
    if not is_valid_identifier(value):
        raise ValueError("Invalid table name")
    return value

# Rejected at request parsing, before any query is built
TableName = Annotated[str, AfterValidator(_check_table_name)]

class ConnectRequest(ApiModel):
    """Both connections to test."""

    source: ConnectionDescriptor
    destination: ConnectionDescriptor

class AnalyzeRequest(ApiModel):
    """Source connection plus optional filter; destination is accepted and ignored."""

    source: ConnectionDescriptor
    destination: Optional[ConnectionDescriptor] = None
    table_pattern: Optional[str] = None

class MigrationRequest(ApiModel):
    """Explicit-descriptor migration or script export."""

    source: ConnectionDescriptor
    destination: ConnectionDescriptor
    table_pattern: Optional[str] = None
    selected_tables: Optional[List[TableName]] = None
    table_data_flags: Optional[Dict[TableName, bool]] = None

class QuickRequest(ApiModel):
    """Migration options when descriptors come from the registry."""

    table_pattern: Optional[str] = None
    selected_tables: Optional[List[TableName]] = None
    table_data_flags: Optional[Dict[TableName, bool]] = None

class SourceBackupRequest(ApiModel):
    """Pre-migration backup of the registry source."""

    table_pattern: Optional[str] = None
    selected_tables: Optional[List[TableName]] = None

class BackupRequest(ApiModel):
    """Backup of one registry database."""

    db: DbSide = DbSide.SOURCE
    selected_tables: Optional[List[TableName]] = None

class TableDataRequest(ApiModel):
    """Paginated read of one table."""

    db: DbSide = DbSide.SOURCE
    table_name: TableName
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=MAX_PAGE_SIZE)
    order_by: Optional[str] = None
    order_dir: SortDirection = SortDirection.ASC
    search: Optional[str] = None

class RowMutationRequest(ApiModel):
    """Insert, update or delete by column predicate."""

    db: DbSide = DbSide.SOURCE
    table_name: TableName
    operation: RowOperation
    data: Optional[Dict[str, Any]] = None
    where: Optional[Dict[str, Any]] = None

class QueryRequest(ApiModel):
    """Ad hoc read-only SQL."""

    db: DbSide = DbSide.SOURCE
    query: str = Field(min_length=1)
