"""Domain exceptions for the shop backend.

Each subclass carries the HTTP status it maps to at the request boundary.
"""


class ShopError(Exception):
    """Base exception for all shop errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(ShopError):
    """Raised when a request field is missing or malformed."""

    status_code = 400


class NotFound(ShopError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class InvalidState(ShopError):
    """Raised when an operation is not valid for the entity's current state."""

    status_code = 400


class Unauthorized(ShopError):
    status_code = 401


class Forbidden(ShopError):
    status_code = 403


class Unexpected(ShopError):
    """Raised when persistence or other infrastructure fails mid-operation."""

    status_code = 500
