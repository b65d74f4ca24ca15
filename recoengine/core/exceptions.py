"""Engine exceptions.

Only malformed input is raised to callers. Missing data and cold starts are
not errors: scorers return an empty list for those.
"""

from typing import Any, Dict, Optional


class RecoEngineError(Exception):
    """Base exception for recommendation engine errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class InvalidInputError(RecoEngineError):
    """Raised when a query parameter is malformed (unknown enum value, bad limit...)."""

    def __init__(self, field: str, value: Any, allowed: Optional[Any] = None):
        message = f"Invalid value for '{field}': {value!r}"
        if allowed is not None:
            message += f" (allowed: {allowed})"
        details: Dict[str, Any] = {"field": field, "value": value}
        if allowed is not None:
            details["allowed"] = allowed
        super().__init__(message=message, status_code=422, details=details)
