"""Migration plan and outcome models."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DATA_COPY_PLACEHOLDER = "-- Copy data from source"

DROP_WARNING = (
    "Every table listed in this plan that already exists in the destination "
    "will be dropped with DROP TABLE ... CASCADE, including dependent objects."
)


class ActionKind(str, Enum):
    """Kinds of actions a plan can hold."""

    COMMENT = "comment"
    DROP = "drop"
    CREATE = "create"


class MigrationStatus(str, Enum):
    """Per-table migration result."""

    SUCCESS = "success"
    ERROR = "error"


class PlanAction(BaseModel):
    """A single DDL statement or informational comment."""

    kind: ActionKind
    sql: str


class TablePlan(BaseModel):
    """Ordered actions that execution would perform for one table."""

    table_name: str = Field(serialization_alias="tableName")
    actions: List[PlanAction] = Field(default_factory=list)

    @property
    def is_destructive(self) -> bool:
        """True if any action drops a table."""
        return any(a.kind == ActionKind.DROP for a in self.actions)


class MigrationPlan(BaseModel):
    """Descriptive preview of a migration; never applied by itself."""

    tables: List[TablePlan] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def table_names(self) -> List[str]:
        """Tables in plan order."""
        return [t.table_name for t in self.tables]


class TableMigrationOutcome(BaseModel):
    """Result of migrating a single table.

    ``rows_copied`` is present iff the status is success, ``error`` iff it
    is an error.
    """

    table: str
    status: MigrationStatus
    rows_copied: Optional[int] = Field(default=None, serialization_alias="rowsCopied")
    error: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"table": "orders", "status": "success", "rowsCopied": 2}
        }
    )

    @model_validator(mode="after")
    def _check_shape(self):
        if self.status == MigrationStatus.SUCCESS:
            if self.rows_copied is None or self.error is not None:
                raise ValueError("success outcome requires rows_copied and no error")
        elif self.rows_copied is not None or not self.error:
            raise ValueError("error outcome requires an error message and no rows_copied")
        return self

    @classmethod
    def success(cls, table: str, rows_copied: int) -> "TableMigrationOutcome":
        """Build a success outcome."""
        return cls(table=table, status=MigrationStatus.SUCCESS, rows_copied=rows_copied)

    @classmethod
    def failure(cls, table: str, error: str) -> "TableMigrationOutcome":
        """Build an error outcome."""
        return cls(table=table, status=MigrationStatus.ERROR, error=error or "Unknown error")

    def to_dict(self):
        """Wire representation with absent keys dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
