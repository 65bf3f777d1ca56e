"""Error taxonomy shared by the planner, executor and outer surfaces."""


class MigrationError(Exception):
    """Base class for all pgmig errors."""


class ValidationError(MigrationError, ValueError):
    """Raised when a descriptor, identifier or request is malformed."""


class InvalidIdentifierError(ValidationError):
    """Raised when a table or column name fails the identifier grammar."""

    def __init__(self, identifier: str, kind: str = "table"):
        self.identifier = identifier
        self.kind = kind
        super().__init__(f"Invalid {kind} name: {identifier!r}")


class UnsafeQueryError(ValidationError):
    """Raised when an ad hoc query is not a single read-only SELECT."""


class DatabaseConnectionError(MigrationError):
    """Raised when a database cannot be reached or rejects the credentials.

    The ``side`` attribute tells the operator which leg failed.
    """

    def __init__(self, side: str, details: str):
        self.side = side
        self.details = details
        super().__init__(f"{side.capitalize()} connection failed: {details}")

    @property
    def label(self) -> str:
        """Short human-readable label, e.g. ``Source connection failed``."""
        return f"{self.side.capitalize()} connection failed"


class TableNotFoundError(MigrationError, LookupError):
    """Raised when a table does not exist in the ``public`` schema."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' not found")
