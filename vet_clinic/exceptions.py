"""
Exception hierarchy for the vet clinic backend.

Services raise these; the app-level error handler turns them into
``{"success": False, "error": ...}`` responses using ``status_code``.
"""
import logging
from typing import Any, Dict, Optional


class VetClinicError(Exception):
    """
    Base exception for all application errors.

    Provides a consistent interface for error handling across services and routes.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message, safe to return to clients
            error_code: Machine-readable error code
            details: Additional error details
            original_error: Lower-level exception that caused this one
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the API error envelope."""
        payload = {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    def log_error(self, logger: Optional[logging.Logger] = None, level: int = logging.ERROR) -> None:
        """Log the exception with its code and details."""
        if logger is None:
            logger = logging.getLogger(__name__)
        logger.log(
            level,
            "%s: %s",
            self.error_code,
            self.message,
            extra={"exception_data": {"details": self.details}},
            exc_info=self.original_error,
        )

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(VetClinicError):
    """Missing, malformed or rule-violating input."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)
        self.field = field


class ConflictError(ValidationError):
    """Input collides with an existing record (duplicate email, license number...)."""

    status_code = 409


class NotFoundError(VetClinicError):
    """The requested entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None, **kwargs):
        message = f"{entity} not found"
        details = kwargs.pop("details", None) or {}
        if entity_id is not None:
            details["id"] = entity_id
        super().__init__(message, details=details, **kwargs)
        self.entity = entity
        self.entity_id = entity_id


class AuthError(VetClinicError):
    """Missing or invalid credentials."""

    status_code = 401


class PermissionDeniedError(AuthError):
    """Authenticated, but not allowed to perform the action."""

    status_code = 403


class UploadError(VetClinicError):
    """The image store rejected or failed an upload."""

    status_code = 500


class PersistenceError(VetClinicError):
    """Unexpected datastore failure."""

    status_code = 500
