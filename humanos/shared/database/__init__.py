"""Database connection management for HumanOS services.

Provides PostgreSQL connection pooling, health checks, and the
repository exceptions used by the safeguarding and interest stores.
"""

from .connection import (
    DatabaseConfig,
    ConnectionManager,
    get_connection_manager,
)
from .errors import (
    RepositoryError,
    NotFoundError,
)

__all__ = [
    "DatabaseConfig",
    "ConnectionManager",
    "get_connection_manager",
    "RepositoryError",
    "NotFoundError",
]
