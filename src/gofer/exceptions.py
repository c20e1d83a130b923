"""
Custom exceptions for the gofer gateway.
"""


class GoferError(Exception):
    """Base exception for all gofer related errors."""
    pass


class TransportError(GoferError):
    """Raised when a remote Gopher or PH server cannot be reached or read."""

    def __init__(self, host: str, port: str, cause: object):
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"{host}:{port}: {cause}")


class MalformedInputError(GoferError):
    """Raised when a directory line fails structural parsing."""
    pass


class RequestValidationError(GoferError):
    """Raised when HTTP request parameters are missing or invalid."""
    pass


class RouteError(RequestValidationError):
    """Raised when a sub-protocol route cannot be parsed."""
    pass


class ForwardingError(GoferError):
    """Raised when a secondary instance cannot reach the primary."""
    pass
