"""
Error taxonomy for the authentication, authorization and booking core.

Every error carries a stable machine-readable ``code``. None of these map to
HTTP status codes here; the translation happens in ``portal.main``.
"""

from typing import Optional


class PortalError(Exception):
    """Base class for all expected, recoverable core errors"""

    code = "PORTAL_ERROR"
    message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


# ============================================================================
# AUTHENTICATION
# ============================================================================


class AuthenticationError(PortalError):
    code = "AUTHENTICATION_FAILED"
    message = "Authentication failed"


class MissingCredentials(AuthenticationError):
    code = "MISSING_AUTH_HEADER"
    message = "Authorization header is required"


class InvalidAuthHeader(AuthenticationError):
    code = "INVALID_AUTH_FORMAT"
    message = "Invalid authorization header format"


class TokenInvalid(AuthenticationError):
    code = "TOKEN_INVALID"
    message = "Invalid token"


class TokenExpired(AuthenticationError):
    code = "TOKEN_EXPIRED"
    message = "Token has expired"


class TokenRevoked(AuthenticationError):
    # Clients see the same message as for an invalid token
    code = "TOKEN_REVOKED"
    message = "Invalid token"


class RefreshTokenInvalid(AuthenticationError):
    code = "REFRESH_TOKEN_INVALID"
    message = "Invalid refresh token"


class InvalidCredentials(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class SigningKeyError(RuntimeError):
    """Signing secret missing or unusable. Fatal at startup, never per request."""


# ============================================================================
# AUTHORIZATION
# ============================================================================


class PermissionDenied(PortalError):
    code = "INSUFFICIENT_PERMISSIONS"
    message = "Insufficient permissions"

    def __init__(self, resource: Optional[str] = None, action: Optional[str] = None):
        super().__init__()
        self.resource = resource
        self.action = action


# ============================================================================
# USERS & BOOKINGS
# ============================================================================


class NotFoundError(PortalError):
    code = "NOT_FOUND"
    message = "Resource not found"


class UserNotFound(NotFoundError):
    code = "USER_NOT_FOUND"
    message = "User not found"


class EmailAlreadyRegistered(PortalError):
    code = "EMAIL_ALREADY_REGISTERED"
    message = "This email is already registered"


class SlotNotFound(NotFoundError):
    code = "TIMESLOT_NOT_FOUND"
    message = "Timeslot not found"


class BookingNotFound(NotFoundError):
    code = "BOOKING_NOT_FOUND"
    message = "Booking not found"


class CapacityExhausted(PortalError):
    code = "TIMESLOT_FULL"
    message = "Timeslot is no longer available"

    def __init__(self, slot_id: Optional[str] = None):
        super().__init__()
        self.slot_id = slot_id


class InvalidBookingTransition(PortalError):
    code = "INVALID_BOOKING_TRANSITION"
    message = "Booking cannot change to the requested status"


class RoleNotFound(NotFoundError):
    code = "ROLE_NOT_FOUND"
    message = "Role not found"


class InvalidPermissionName(PortalError):
    code = "INVALID_PERMISSION"
    message = "Invalid permission name"
