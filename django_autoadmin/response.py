"""
Django-Autoadmin Response Utilities

Response building for the admin API.

Features:
- Response code management (code -> HTTP status, default messages)
- Mapping of admin exceptions to error responses
"""

import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse


logger = logging.getLogger("django_autoadmin")


class AdminResponse:
    """
    Response builder for the admin API.

    Success and failure are indicated by HTTP status codes; error responses
    carry an "error" message (and "field" for field validation errors).

    Example:
        >>> response = AdminResponse.ok(id=1)
        >>> response.to_dict()
        {'id': 1}

        >>> response = AdminResponse.error("NOT_FOUND", "Model Foo not found")
        >>> response.to_dict()
        {'error': 'Model Foo not found'}
    """

    # Map response codes to HTTP status codes
    STATUS_MAP = {
        "OK": 200,
        "CREATED": 201,
        "BAD_REQUEST": 400,
        "INVALID_JSON": 400,
        "VALIDATION_ERROR": 400,
        "UNAUTHORIZED": 401,
        "PERMISSION_DENIED": 403,
        "NOT_FOUND": 404,
        "METHOD_NOT_ALLOWED": 405,
        "INTERNAL_ERROR": 500,
    }

    # Messages for response codes
    MSG_MAP = {
        "OK": "Success",
        "CREATED": "Created successfully",
        "BAD_REQUEST": "Bad request",
        "INVALID_JSON": "Invalid JSON in request body",
        "VALIDATION_ERROR": "Invalid value",
        "UNAUTHORIZED": "Authentication required",
        "PERMISSION_DENIED": "Permission denied",
        "NOT_FOUND": "Not found",
        "METHOD_NOT_ALLOWED": "Method not allowed",
        "INTERNAL_ERROR": "Internal server error",
    }

    def __init__(self, code="OK", error_message=None, **data):
        """
        Initialize an AdminResponse.

        Args:
            code: Response code key (e.g., "OK", "NOT_FOUND")
            error_message: Optional error message for error responses
            **data: Additional data to include in response
        """
        self.code = code
        self.error_message = error_message
        self.data = data

    @property
    def success(self):
        """Whether the response indicates success."""
        return self.code in ("OK", "CREATED")

    @property
    def http_status(self):
        """Get HTTP status code for this response."""
        return self.STATUS_MAP.get(self.code, 500)

    @classmethod
    def ok(cls, **data):
        """Create a successful response."""
        return cls(code="OK", **data)

    @classmethod
    def created(cls, **data):
        return cls(code="CREATED", **data)

    @classmethod
    def error(cls, code, message=None, **data):
        """Create an error response."""
        return cls(code=code, error_message=message or cls.MSG_MAP.get(code, "An error occurred"), **data)

    @classmethod
    def from_exception(cls, exc):
        """
        Build the error response for an exception raised by an admin operation.

        - PermissionError -> PERMISSION_DENIED
        - LookupError -> NOT_FOUND
        - ValidationError -> VALIDATION_ERROR (INVALID_JSON for JSON fields)
        - ValueError -> BAD_REQUEST

        Anything else is logged and reported as INTERNAL_ERROR.
        """
        if isinstance(exc, PermissionError):
            return cls.error("PERMISSION_DENIED", str(exc))

        if isinstance(exc, LookupError):
            return cls.error("NOT_FOUND", exc.args[0] if exc.args else None)

        if isinstance(exc, ValidationError):
            code = "INVALID_JSON" if getattr(exc, "code", None) == "invalid_json" else "VALIDATION_ERROR"
            params = getattr(exc, "params", None) or {}
            data = {"field": params["field"]} if "field" in params else {}
            return cls.error(code, " ".join(exc.messages), **data)

        if isinstance(exc, ValueError):
            return cls.error("BAD_REQUEST", str(exc))

        logger.exception("Unhandled admin error: %s", exc)
        return cls.error("INTERNAL_ERROR")

    def to_dict(self):
        """Convert response to dictionary for JSON serialization."""
        result = {}
        if self.error_message:
            result["error"] = self.error_message
        result.update(self.data)
        return result

    def to_json_response(self):
        """Convert to Django JsonResponse."""
        return JsonResponse(self.to_dict(), status=self.http_status)
