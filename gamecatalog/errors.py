"""Error taxonomy shared by the repositories, the services and the HTTP glue.

Each error carries the HTTP-equivalent ``status`` the adapter responds with,
so callers never need to map exception classes to codes themselves.
"""


class CatalogError(Exception):
    """Base class for every error the catalog core raises on purpose."""

    status = 500

    def __init__(self, message: str, **details) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(CatalogError):
    """Raised when a game, collection or tag does not exist."""

    status = 404


class Conflict(CatalogError):
    """Raised on duplicate creation or deletion of a tag that is still used."""

    status = 409


class ValidationError(CatalogError):
    """Raised when a request is missing data or carries unusable values."""

    status = 400


class InvalidInput(ValidationError):
    """Raised for malformed tag titles (``None``, empty, whitespace, non-string).

    Bulk flows such as :meth:`TagService.ensure_exists` catch this and return
    ``None`` instead of propagating it.
    """
