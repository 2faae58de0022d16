"""Translation of domain exceptions into HTTP errors"""

import logging

from fastapi import HTTPException

from contas_gateway.domain.exceptions import (
    DomainException,
    NotFoundError,
    StateError,
    TransientFailure,
    ValidationError,
)

STATUS_BY_CATEGORY = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (StateError, 409),
    (TransientFailure, 503),
]


def to_http_exception(error: DomainException, request_id: str) -> HTTPException:
    """Map an error to its status code; the body carries the stable error code"""
    status_code = next((code for category, code in STATUS_BY_CATEGORY if isinstance(error, category)), 500)

    if status_code >= 500:
        logging.error(f"{error.code}: {error.message}", extra={"request_id": request_id})
    else:
        logging.warning(f"{error.code}: {error.message}", extra={"request_id": request_id})

    return HTTPException(status_code=status_code, detail={"code": error.code, "message": error.message})
