# cartorder/api/errors.py
from fastapi import HTTPException

from cartorder.domain.errors import (
    CartOrderError,
    ConcurrencyError,
    CorruptDataError,
    EmptyCartError,
    NotFoundError,
    NotModifiableError,
    PersistenceError,
    ValidationError,
)

STATUS_CODES = {
    ValidationError: 400,
    EmptyCartError: 400,
    NotFoundError: 404,
    NotModifiableError: 409,
    ConcurrencyError: 409,
    PersistenceError: 500,
    CorruptDataError: 500,
}


def to_http_error(error: CartOrderError) -> HTTPException:
    status_code = STATUS_CODES.get(type(error), 500)
    return HTTPException(status_code=status_code, detail=str(error))
