"""HTTP route groups."""
from pgmig.api.routers import database, migration

__all__ = ['database', 'migration']
