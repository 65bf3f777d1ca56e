"""Configuration management."""
from pgmig.config.connection import (
    ConnectionConfigError,
    ConnectionRegistry,
    load_connection_config,
    parse_descriptor,
    validate_connection_config,
)

__all__ = [
    'ConnectionConfigError',
    'ConnectionRegistry',
    'load_connection_config',
    'parse_descriptor',
    'validate_connection_config',
]
