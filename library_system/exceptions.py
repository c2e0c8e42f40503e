"""
Exception classes shared by the domain types, the storage backends and the services.

Every backend surfaces its failures as OperationFailedError so callers never
need to know which backend is in use.
"""


class LibraryError(Exception):
    """Base exception for all library errors."""
    pass


class InvalidArgumentError(LibraryError):
    """Raised when input is malformed before it reaches storage (empty ids, bad years...)."""
    pass


class NotFoundError(LibraryError):
    """Raised when an operation requires an entity that does not exist."""
    pass


class OperationFailedError(LibraryError):
    """Raised on business-rule violations and on any wrapped storage failure."""
    pass
