"""Service-layer error taxonomy.

Services raise these where a failure is detected; routers translate them to
HTTP responses (see `tallerdb.utils.http.http_error`). Nothing here imports
FastAPI so services and jobs can use the errors without the web stack.
"""

from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for errors a caller is expected to handle."""

    status_code = 400

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(ServiceError, ValueError):
    """Malformed input: bad document/phone format, missing field, underage."""

    status_code = 400


class ConflictError(ServiceError):
    """Uniqueness violation or an illegal precondition on existing data."""

    status_code = 409


class StateError(ServiceError):
    """Illegal state transition (e.g. toggling a soft-deleted worker)."""

    status_code = 409


class NotFoundError(ServiceError):
    status_code = 404


class AuthenticationError(ServiceError):
    """Credentials are invalid, expired, or the account cannot log in."""

    status_code = 401


class ConfigurationError(ServiceError, RuntimeError):
    """
    Required seed/configuration data is missing (e.g. no role catalog).

    Fatal for the operation that needed it; never silently defaulted.
    """

    status_code = 500


class DeliveryError(Exception):
    """
    A notification could not be delivered.

    Non-fatal for identity mutations: it is caught after the transaction
    committed and reported as part of the result.
    """
