from __future__ import annotations

from typing import Optional


class RentalError(Exception):
    """
    Base class for every failure the service reports to its callers.

    Each subclass carries the HTTP status the interface layer should use.
    """

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RentalError):
    status_code = 400


class NotFoundError(RentalError):
    """A record the operation depends on could not be loaded."""

    status_code = 500


class AuthorizationError(RentalError):
    status_code = 403


class PreconditionFailed(RentalError):
    """The current state does not allow the requested transition."""

    status_code = 400


class ConfigurationError(RentalError):
    status_code = 500


class ConsistencyError(RentalError):
    """A multi-row write found the datastore in a state it cannot reconcile."""

    status_code = 500


class DatastoreError(RentalError):
    status_code = 500


class UpstreamError(RentalError):
    """The game-statistics API answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int = 502, body: bytes = b"") -> None:
        super().__init__(message, status_code)
        self.body = body
