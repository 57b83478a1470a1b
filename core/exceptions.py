"""
Error taxonomy shared by the services and the HTTP boundary.

Services raise these synchronously; ``api.main`` maps them onto the
``{"success": false, "error": {...}}`` envelope using ``status_code`` and
``code``.
"""
from typing import Any, Dict, List, Optional


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        if self.retryable:
            payload["retryable"] = True
        return payload


class ValidationError(AppError):
    """Malformed input. ``details`` is a list of ``{"field", "message"}`` entries."""
    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, details)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, [{"field": field, "message": message}])


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"

    def __init__(self, message: str = "You do not have permission to perform this action", authenticated: bool = True):
        super().__init__(message)
        if not authenticated:
            self.status_code = 401
            self.code = "unauthorized"


class AttemptsExhaustedError(AppError):
    status_code = 409
    code = "attempts_exhausted"

    def __init__(self, quiz_id: int, max_attempts: int):
        super().__init__(
            "Maximum attempts reached for this quiz",
            {"quiz_id": quiz_id, "max_attempts": max_attempts},
        )
        self.quiz_id = quiz_id
        self.max_attempts = max_attempts


class StoreUnavailableError(AppError):
    status_code = 503
    code = "store_unavailable"
    retryable = True

    def __init__(self, message: str = "Data store is temporarily unavailable"):
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
