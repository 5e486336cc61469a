"""User-related exceptions."""

from .base import AppPermissionError, BaseAppException, NotFoundError


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message=message, error_code="USER_NOT_FOUND")


class InactiveUserError(AppPermissionError):
    """Raised when an inactive account tries to use the API."""

    def __init__(self, message: str = "User account is inactive"):
        super().__init__(message=message, error_code="USER_INACTIVE")


class UserAlreadyExistsError(BaseAppException):
    """Raised when a unique user attribute is already taken."""

    def __init__(self, message: str = "User already exists"):
        super().__init__(message=message, status_code=409, error_code="USER_ALREADY_EXISTS")
