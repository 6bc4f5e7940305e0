"""Domain error taxonomy raised by the reservation services"""

import functools

from sqlalchemy.exc import SQLAlchemyError
import structlog

logger = structlog.get_logger()


class BookingError(Exception):
    """Base class for every error the services raise to their callers"""

    status_code = 400
    kind = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    """Entity absent or not owned by the caller's shop"""
    status_code = 404
    kind = "not_found"


class ValidationError(BookingError):
    """Input violates a business rule"""
    status_code = 400
    kind = "validation_error"


class ConflictError(BookingError):
    """Requested window collides with an existing reservation"""
    status_code = 409
    kind = "conflict"


class InvalidStateError(BookingError):
    """Transition not allowed from the reservation's current status"""
    status_code = 409
    kind = "invalid_state"


class StoreError(BookingError):
    """Persistence failure"""
    status_code = 503
    kind = "store_error"


def translate_store_errors(func):
    """Turn SQLAlchemy failures raised by a service method into StoreError.

    The session is rolled back before re-raising. Domain errors pass through
    untouched.
    """
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("Store operation failed", operation=func.__qualname__, error=str(exc))
            await self.db.rollback()
            raise StoreError(f"Storage operation failed: {func.__name__}") from exc
    return wrapper
