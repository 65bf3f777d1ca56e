"""Connection configuration management."""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pydantic
import yaml
from pydantic import BaseModel

from pgmig.models.connection import ConnectionDescriptor, DbSide

logger = logging.getLogger(__name__)

SOURCE_ENV = 'DATABASE_URL_OLD'
DESTINATION_ENV = 'DATABASE_URL_NEW'
ENV_VARS = {DbSide.SOURCE: SOURCE_ENV, DbSide.DESTINATION: DESTINATION_ENV}

DETAIL_FIELDS = ('host', 'port', 'database', 'user', 'password')


class ConnectionConfigError(ValueError):
    """Raised when connection configuration loading fails."""


class ConnectionRegistry(BaseModel):
    """Named connections resolved once at start-up.

    Passed explicitly to the API and CLI; nothing reads the environment
    after this object is built.
    """

    source: Optional[ConnectionDescriptor] = None
    destination: Optional[ConnectionDescriptor] = None

    @property
    def quick_mode(self) -> bool:
        """True when both databases are preconfigured."""
        return self.source is not None and self.destination is not None

    def get(self, side: DbSide) -> ConnectionDescriptor:
        """Return the descriptor for ``side``.

        Raises:
            ConnectionConfigError: If that side is not configured
        """
        side = DbSide(side)
        descriptor = self.source if side == DbSide.SOURCE else self.destination
        if descriptor is None:
            raise ConnectionConfigError(f"{ENV_VARS[side]} not configured")
        return descriptor

    def status(self) -> Dict[str, bool]:
        """Configuration summary exposed to clients."""
        return {
            'hasEnvConfig': self.quick_mode,
            'sourceConfigured': self.source is not None,
            'destinationConfigured': self.destination is not None
        }


def load_connection_config(
    conn_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> ConnectionRegistry:
    """Load the source/destination connection registry.

    Loads configuration with the following priority:
    1. Explicit --conn-file path (highest priority)
    2. ~/.pgmig/connections.yaml
    3. DATABASE_URL_OLD / DATABASE_URL_NEW environment variables
    4. Empty registry (every request must then carry its own descriptors)

    Args:
        conn_file: Optional explicit connection file path
        environ: Environment mapping (default: os.environ)

    Returns:
        ConnectionRegistry

    Raises:
        ConnectionConfigError: If a configuration file or entry is invalid
    """
    if conn_file:
        registry = _load_yaml_config(conn_file)
        logger.info("Loaded connection config from: %s", conn_file)
        return registry

    default_path = Path.home() / '.pgmig' / 'connections.yaml'
    if default_path.exists():
        registry = _load_yaml_config(str(default_path))
        logger.info("Loaded connection config from: %s", default_path)
        return registry

    registry = _load_from_env(os.environ if environ is None else environ)
    if registry.source or registry.destination:
        logger.info("Loaded connection config from environment variables")
    else:
        logger.debug("No preconfigured connections found")
    return registry


def _load_yaml_config(file_path: str) -> ConnectionRegistry:
    """Load YAML configuration file.

    The file holds ``source`` and/or ``destination`` keys, each either a
    connection URL or a mapping of connection details.

    Raises:
        ConnectionConfigError: If file is invalid or missing
    """
    try:
        if not os.path.exists(file_path):
            raise ConnectionConfigError(f"Configuration file not found: {file_path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ConnectionConfigError(
                f"Configuration file must contain a YAML dictionary: {file_path}"
            )

    except yaml.YAMLError as e:
        raise ConnectionConfigError(
            f"Invalid YAML configuration: {file_path}\n{e}"
        ) from e
    except OSError as e:
        raise ConnectionConfigError(
            f"Error reading configuration file: {file_path}\n{e}"
        ) from e

    return ConnectionRegistry(
        source=parse_descriptor(config.get('source'), DbSide.SOURCE),
        destination=parse_descriptor(config.get('destination'), DbSide.DESTINATION)
    )


def _load_from_env(environ: Mapping[str, str]) -> ConnectionRegistry:
    """Build the registry from DATABASE_URL_OLD / DATABASE_URL_NEW."""
    return ConnectionRegistry(
        source=parse_descriptor(environ.get(SOURCE_ENV) or None, DbSide.SOURCE),
        destination=parse_descriptor(environ.get(DESTINATION_ENV) or None, DbSide.DESTINATION)
    )


def parse_descriptor(value: Any, side: DbSide) -> Optional[ConnectionDescriptor]:
    """Turn a URL string or a details mapping into a descriptor.

    Returns None when ``value`` is None.

    Raises:
        ConnectionConfigError: If the entry is malformed or incomplete
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = {'connection_string': value}
    if not isinstance(value, dict):
        raise ConnectionConfigError(
            f"{DbSide(side).value} connection must be a URL or a mapping, got {type(value).__name__}"
        )
    validate_connection_config(side, value)
    try:
        return ConnectionDescriptor.model_validate(value)
    except pydantic.ValidationError as e:
        raise ConnectionConfigError(f"Invalid {DbSide(side).value} connection: {e}") from e


def validate_connection_config(side: DbSide, config: Dict[str, Any]) -> bool:
    """Validate that required connection parameters are present.

    A non-empty connection string is sufficient on its own; otherwise every
    detail field is required.

    Raises:
        ConnectionConfigError: If required parameters are missing
    """
    if config.get('connection_string') or config.get('connectionString'):
        return True

    missing_fields = [f for f in DETAIL_FIELDS if f not in config or not config[f]]

    if missing_fields:
        raise ConnectionConfigError(
            f"Missing required connection parameters for {DbSide(side).value}: "
            f"{', '.join(missing_fields)}. "
            f"Provide a connection string or all of: {', '.join(DETAIL_FIELDS)}"
        )

    return True
