"""Exceptions raised by fastapi-datatables."""

from fastapi import HTTPException, status


class DataTablesError(Exception):
    """Base class for errors that are not the client's fault."""


class MethodNotImplementedError(DataTablesError, NotImplementedError):
    """An implementor did not supply a required collaborator."""


class ConfigurationError(DataTablesError, ValueError):
    """A column registry or configuration value is invalid."""


class MalformedParameterError(HTTPException):
    """Request parameters could not be parsed into canonical form."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnresolvableColumnError(HTTPException):
    """A sort or search term references a column that cannot be resolved.

    Dropped silently by default; only reaches the client in strict mode.
    """

    def __init__(self, reference: object, reason: str = "unknown column"):
        self.reference = reference
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot resolve column '{reference}': {reason}",
        )
