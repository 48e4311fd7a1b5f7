from __future__ import annotations

import logging

from fastapi import HTTPException, status

from tallerdb.errors import ConfigurationError, ServiceError

logger = logging.getLogger(__name__)


def http_error(exc: ServiceError) -> HTTPException:
    """Map a service-layer error to the HTTPException a router should raise."""
    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error surfaced to caller: %s", exc.message)
    detail = exc.message if exc.code is None else {"message": exc.message, "code": exc.code}
    return HTTPException(
        status_code=getattr(exc, "status_code", status.HTTP_400_BAD_REQUEST),
        detail=detail,
    )
