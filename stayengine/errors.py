"""Domain exceptions raised by the availability and pricing services.

Routers never build error responses for these by hand; ``stayengine.main``
registers a single handler on ``StayEngineError`` that renders every subclass as::

    {"detail": "<message>", "code": "<machine readable reason>"}
"""

from fastapi import status


class StayEngineError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(StayEngineError):
    """Malformed dates, reversed ranges, oversized windows, bad amounts.

    Never retried automatically.
    """

    code = "validation_error"


class UnitNotQuotable(ValidationError):
    """The unit exists but cannot be priced as a nightly stay."""

    status_code = status.HTTP_409_CONFLICT
    code = "unit_not_quotable"


class DateConflict(ValidationError):
    """Requested nights overlap existing occupancy."""

    status_code = status.HTTP_409_CONFLICT
    code = "date_conflict"


class NotFoundError(StayEngineError):
    """Unknown unit or block identifier."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class PermissionDeniedError(StayEngineError):
    """The upstream permission layer did not grant the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"


class UpstreamError(StayEngineError):
    """The record store (or a channel feed) is unavailable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "upstream_unavailable"


class PricingInvariantViolation(BaseException):
    """``total - fees != base``: a bug in the pricing engine, not user error.

    Derives from ``BaseException`` so ``except Exception`` blocks, including
    the framework's error handlers, cannot recover from it.
    """
