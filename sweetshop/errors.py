"""
Failure taxonomy shared by the services and the HTTP layer.

Every failure carries a machine-readable ``kind`` and a human-readable
message. Services raise these; ``main.py`` turns them into JSON responses.
None of them import FastAPI.
"""


class ServiceError(Exception):
    """Base class for all classified failures."""

    kind = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(ServiceError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "Could not validate credentials"


class InvalidCredentialsError(ServiceError):
    kind = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password"


class ForbiddenError(ServiceError):
    kind = "forbidden"
    status_code = 403
    default_message = "Admin privileges required"


class ValidationError(ServiceError):
    kind = "validation_error"
    status_code = 400
    default_message = "Invalid input"


class DuplicateEmailError(ServiceError):
    kind = "duplicate_email"
    status_code = 400
    default_message = "Email already exists"


class DuplicateNameError(ServiceError):
    kind = "duplicate_name"
    status_code = 400
    default_message = "An item with this name already exists"


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404
    default_message = "Item not found"


class OutOfStockError(ServiceError):
    kind = "out_of_stock"
    status_code = 400
    default_message = "Item is out of stock"


class InternalError(ServiceError):
    pass


# Raised by the session issuer; the authentication gate folds both into
# UnauthenticatedError.
class InvalidTokenError(ServiceError):
    kind = "invalid_token"
    status_code = 401
    default_message = "Session token is invalid"


class ExpiredTokenError(ServiceError):
    kind = "expired_token"
    status_code = 401
    default_message = "Session token has expired"
