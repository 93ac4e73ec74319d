"""Domain errors raised by the capacity & admission engine.

Every error carries a stable ``code`` so API callers can tell an
``overbooked`` rejection (offer another slot) apart from generic failures.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingError(Exception):
    code = "booking_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class NotFoundError(BookingError):
    status_code = 404


class ActivityNotFound(NotFoundError):
    code = "activity_not_found"


class ReservationNotFound(NotFoundError):
    code = "reservation_not_found"


class PackageTourNotFound(NotFoundError):
    code = "package_tour_not_found"


class SlotNotFound(NotFoundError):
    """No template entry or override produces a slot at the requested time."""

    code = "slot_not_found"

    def __init__(self, message: str, slot_key: Optional[tuple] = None):
        super().__init__(message)
        self.slot_key = slot_key


class Overbooked(BookingError):
    code = "overbooked"
    status_code = 409

    def __init__(self, message: str, available: int, requested: int):
        super().__init__(message)
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(available=self.available, requested=self.requested)
        return data


class LicenseLimitExceeded(BookingError):
    code = "license_limit_exceeded"
    status_code = 402


class GroupPartialFailure(BookingError):
    """A group member failed; every other member was rolled back with it."""

    code = "group_partial_failure"
    status_code = 409

    def __init__(self, message: str, member: Optional[dict] = None, cause: Optional[BookingError] = None):
        super().__init__(message)
        self.member = member
        self.cause = cause

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["member"] = self.member
        data["cause"] = self.cause.to_dict() if self.cause else None
        return data


class InvalidOverride(BookingError):
    code = "invalid_override"
    status_code = 409


class InvalidStatusTransition(BookingError):
    code = "invalid_status_transition"
    status_code = 409


class SlotBusy(BookingError):
    code = "slot_busy"
    status_code = 503


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if isinstance(exc, (NotFoundError, Overbooked)):
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    logger.info("%s %s -> invalid_request: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": "invalid_request", "message": str(exc)})


def register_exception_handlers(app) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
