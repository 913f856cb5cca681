from typing import Any, Callable

from fastapi import Request
from fastapi.responses import JSONResponse


class TrackingError(Exception):
    """ Base class for all errors raised by the tracking service. """
    pass


class ConfigurationError(TrackingError):
    """ Raised when the simulation configuration breaks an invariant (day range, business window). """
    pass


class InsufficientDataError(TrackingError):
    """ Raised internally when origin or destination data cannot produce a route. """
    pass


class PersistenceError(TrackingError):
    """ Raised when the storage layer fails to read or write. """
    pass


class DeliveryNotFoundError(TrackingError):
    """ Raised when a delivery id or tracking code does not exist. """
    pass


class InvalidStatusTransitionError(TrackingError):
    """ Raised when a status change would move a delivery backwards or out of a terminal state. """
    pass


class NoPendingEventError(TrackingError):
    """ Raised when a delivery has no unexecuted scheduled event to advance to. """
    pass


class WebhookAuthError(TrackingError):
    """ Raised when a webhook request carries a missing or wrong API key. """
    pass


def create_exception_handler(status_code: int, detail: Any = None) -> Callable[[Request, Exception], JSONResponse]:
    """Handler factory; without a fixed detail the exception message is returned."""
    async def exception_handler(request: Request, exception: TrackingError):
        return JSONResponse(
            content={"detail": detail if detail is not None else str(exception)},
            status_code=status_code
        )

    return exception_handler


EXCEPTION_STATUS_CODES: dict[type[TrackingError], int] = {
    ConfigurationError: 422,
    DeliveryNotFoundError: 404,
    InvalidStatusTransitionError: 409,
    NoPendingEventError: 404,
    WebhookAuthError: 401,
    PersistenceError: 500,
}
