"""Domain errors raised by crud/linkage code and mapped to HTTP statuses in main."""
from typing import Dict, Optional


class ValidationFailed(ValueError):
    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(LookupError):
    pass


class Forbidden(PermissionError):
    pass


class AuthError(Exception):
    pass


class LinkageError(RuntimeError):
    """A linkage operation was called on a user in the wrong state."""
