"""Repository exceptions shared by all storage backends."""


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class NotFoundError(RepositoryError):
    """Entity not found in storage."""
    pass
