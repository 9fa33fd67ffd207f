"""
Application error types.

Services raise these; the handlers registered in ``main.py`` turn them into
the failure envelope with the matching HTTP status.
"""
from typing import Any


class AppError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ValidationFailedError(AppError):
    status_code = 400
    default_message = "Validation error"


class InvalidStateError(AppError):
    """An action was attempted while the resource is in a state that does not allow it."""
    status_code = 400
    default_message = "Action not allowed in the current state"


class PlanNotJoinableError(InvalidStateError):
    default_message = "You cannot join this plan at this time"


class SelfJoinError(InvalidStateError):
    default_message = "Host cannot join their own plan"


class ReviewNotAllowedError(InvalidStateError):
    default_message = "You can only review a trip after it is completed"


class NotParticipantError(InvalidStateError):
    default_message = "You did not join this plan"


class HostSelfReviewError(InvalidStateError):
    default_message = "Host cannot review their own plan"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class AlreadyJoinedError(ConflictError):
    default_message = "You already joined this plan"


class PlanFullError(ConflictError):
    default_message = "This plan is full"


class CouponError(AppError):
    status_code = 400
    default_message = "Coupon cannot be applied"


class CouponInactiveError(CouponError):
    default_message = "Coupon is not active"


class CouponExpiredError(CouponError):
    default_message = "Coupon has expired"


class CouponLimitExceededError(CouponError):
    default_message = "Coupon usage limit exceeded"


class CouponBelowMinimumError(CouponError):
    default_message = "Purchase amount is below the coupon minimum"


class PaymentProviderError(AppError):
    status_code = 502
    default_message = "Payment provider error"
