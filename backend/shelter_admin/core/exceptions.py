"""Domain error kinds shared by services and mapped to HTTP responses in ``api.errors``."""

from __future__ import annotations


class ShelterAdminError(Exception):
    """Base class for errors raised by the service layer."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ShelterAdminError):
    """User-correctable input problem. Never logged as a fault."""

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


class PermissionDenied(ShelterAdminError):
    """The caller may not perform the mutation, or the target is protected."""


class PersistenceError(ShelterAdminError):
    """A document store call failed."""


class IndexMissingError(PersistenceError):
    """The store cannot serve an ordered query because a required index is absent."""


class NotFoundError(PersistenceError):
    """The referenced record does not exist."""
