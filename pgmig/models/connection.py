"""Connection descriptor model."""
from enum import Enum
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DSN_SCHEMES = ('postgres', 'postgresql')


class DbSide(str, Enum):
    """Which of the two distinguished databases a request targets."""

    SOURCE = "source"
    DESTINATION = "destination"


class ConnectionDescriptor(BaseModel):
    """Either an opaque connection URI or the full set of connection details.

    Exactly one form must be resolvable to a DSN; partial input fails
    validation before any database is contacted.
    """

    host: Optional[str] = None
    # Numeric strings such as "5432" are coerced
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    connection_string: Optional[str] = Field(default=None, alias="connectionString")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "host": "localhost",
                "port": 5432,
                "database": "app",
                "user": "postgres",
                "password": "secret"
            }
        }
    )

    @field_validator("port", mode="before")
    @classmethod
    def _blank_port_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_resolvable(self):
        if self.connection_string:
            scheme = urlsplit(self.connection_string).scheme
            if scheme not in DSN_SCHEMES:
                raise ValueError(
                    f"Connection string must start with postgres:// or postgresql://, got '{scheme}'"
                )
            return self
        missing = [
            name for name in ('host', 'port', 'database', 'user', 'password')
            if getattr(self, name) in (None, '')
        ]
        if missing:
            raise ValueError(
                "Either connection string or all connection details required "
                f"(missing: {', '.join(missing)})"
            )
        return self

    def to_dsn(self) -> str:
        """Render the descriptor as a libpq-style URI."""
        if self.connection_string:
            return self.connection_string
        return (
            f"postgresql://{quote(str(self.user), safe='')}:{quote(str(self.password), safe='')}"
            f"@{self.host}:{self.port}/{quote(str(self.database), safe='')}"
        )

    def masked_dsn(self) -> str:
        """DSN with the password replaced, safe to log."""
        parts = urlsplit(self.to_dsn())
        if parts.password is None:
            return self.to_dsn()
        netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
        return urlunsplit(parts._replace(netloc=netloc))
