from typing import List, Optional

from pydantic import BaseModel, Field

class ColumnSchema(BaseModel):
    """Represents a column as observed through introspection."""

    column_name: str
    data_type: str
    is_nullable: bool = True
    default: Optional[str] = None
    max_length: Optional[int] = None
    ordinal_position: int
    is_primary_key: bool = False

class TableSchema(BaseModel):
    """Represents a table in the ``public`` schema.

    ``row_count`` and ``size_bytes`` come from the statistics collector and
    are estimates only.
    """

    table_name: str
    columns: List[ColumnSchema] = Field(default_factory=list)
    primary_keys: List[str] = Field(default_factory=list)
    row_count: int = 0
    size_bytes: int = 0

class TableInfo(BaseModel):
    """Summary row used by table listings."""

    name: str
    rows: int
    size: str
