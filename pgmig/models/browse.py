"""Models for the table browser."""
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field

MAX_PAGE_SIZE = 1000


class SortDirection(str, Enum):
    """Sort direction for paginated reads."""

    ASC = "asc"
    DESC = "desc"


class RowOperation(str, Enum):
    """Row mutation kinds."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class TableDataPage(BaseModel):
    """One page of rows from a table."""

    table_name: str = Field(serialization_alias="tableName")
    columns: List[str]
    rows: List[Dict[str, Any]]
    total_rows: int = Field(serialization_alias="totalRows")
    page: int
    page_size: int = Field(serialization_alias="pageSize")
    total_pages: int = Field(serialization_alias="totalPages")
