"""Domain exceptions raised by services and routes.

Each one is mapped to an HTTP status and a JSON body by the handlers
registered in ``carebridge.main``.
"""

from typing import Any, Dict, Optional


class ApiException(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "field_errors": {},
            "metadata": self.metadata,
        }


class NotFoundException(ApiException):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "The resource you requested was not found.", metadata=None):
        super().__init__(message, metadata)


class AuthenticationException(ApiException):
    status_code = 401
    code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "You must be signed in to do that.", metadata=None):
        super().__init__(message, metadata)


class AuthorizationException(ApiException):
    status_code = 403
    code = "AUTHORIZATION_FAILED"

    def __init__(self, message: str = "You are not authorized to do that.", metadata=None):
        super().__init__(message, metadata)


class ValidationException(ApiException):
    """
    Raised when request data fails business validation.

    ``field_errors`` maps a field name to a human readable message;
    ``message`` is a general message shown when no field applies.
    """

    status_code = 422
    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.field_errors = field_errors or {}
        if message is None:
            message = next(iter(self.field_errors.values()), "Please correct the errors and try again.")
        super().__init__(message, metadata)

    @classmethod
    def for_field(cls, field: str, message: str, metadata: Optional[Dict[str, Any]] = None) -> "ValidationException":
        return cls(message, {field: message}, metadata)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["field_errors"] = self.field_errors
        return body
