"""
Error taxonomy for the API.

Every error is an ``HTTPException`` so routes and services can simply raise
it; ``storefront.main`` renders them with a human-readable ``message`` plus a
machine-readable ``code``.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class StorefrontError(HTTPException):
    status_code = 400
    code = "StorefrontError"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(status_code=self.status_code, detail=self.message)


class ValidationError(StorefrontError):
    code = "ValidationError"
    default_message = "Validation failed"


class NotFoundError(StorefrontError):
    status_code = 404
    code = "NotFound"
    default_message = "Resource not found"


class AuthenticationError(StorefrontError):
    status_code = 401
    code = "NotAuthenticated"
    default_message = "Not authenticated"


class AuthorizationError(StorefrontError):
    status_code = 403
    code = "Forbidden"
    default_message = "Forbidden: Admin access required"


# Coupon validation / redemption failures

class CouponNotFound(NotFoundError):
    default_message = "Invalid coupon code"


class CouponInactive(StorefrontError):
    code = "Inactive"
    default_message = "This coupon is inactive"


class CouponOutOfWindow(StorefrontError):
    code = "OutOfWindow"
    default_message = "This coupon has expired or is not yet active"


class CouponUsageExhausted(StorefrontError):
    code = "UsageExhausted"
    default_message = "This coupon has reached its usage limit"


class CouponBelowMinimum(StorefrontError):
    code = "BelowMinimum"

    def __init__(self, minimum_cart_value: float, cart_value: float):
        super().__init__(
            f"Minimum cart value of {minimum_cart_value:g} required for this coupon",
            minimumCartValue=minimum_cart_value,
            shortfall=round(minimum_cart_value - cart_value, 2),
        )
