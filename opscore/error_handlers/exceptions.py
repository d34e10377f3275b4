"""
Custom exception hierarchy for type-safe error handling

Maps domain failures to HTTP status codes so job trigger endpoints and
batch runs report them consistently.

Exception Hierarchy:
    AppException (base)
    ├── ValidationException (400)
    │   └── InvalidRuleException (400)
    ├── ResourceNotFoundException (404)
    ├── ConfigurationException (500)
    └── DatabaseException (500)
"""
from typing import Dict, Any, Optional


class AppException(Exception):
    """
    Base exception for all application errors

    Attributes:
        status_code: HTTP status code for the error
        error_type: String identifier for the error type
        message: Human-readable error message
        details: Additional context about the error
    """
    status_code = 500
    error_type = 'ApplicationError'

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to JSON-serializable dictionary

        Returns:
            Dictionary suitable for JSON response
        """
        result = {
            'error': self.error_type,
            'message': self.message,
            'status_code': self.status_code
        }

        if self.details:
            result.update(self.details)

        return result

    def __str__(self) -> str:
        return f"{self.error_type}: {self.message}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}('{self.message}', status_code={self.status_code})>"


class ValidationException(AppException):
    """
    Validation errors (HTTP 400)

    Example:
        >>> if rule_type not in RULE_TYPES:
        ...     raise ValidationException(f'Unknown rule type {rule_type}')
    """
    status_code = 400
    error_type = 'ValidationError'


class InvalidRuleException(ValidationException):
    """
    Malformed recurrence configuration (HTTP 400)

    Raised by rule validation. Batch runs report the rule and skip it
    without writing anything for it.
    """
    error_type = 'InvalidRule'


class ResourceNotFoundException(AppException):
    """
    Resource not found (HTTP 404)

    Example:
        >>> ca = db.session.get(CorrectiveAction, ca_id)
        >>> if not ca:
        ...     raise ResourceNotFoundException(f'Corrective action {ca_id} not found')
    """
    status_code = 404
    error_type = 'NotFound'


class ConfigurationException(AppException):
    """Configuration errors (HTTP 500)"""
    status_code = 500
    error_type = 'ConfigurationError'


class DatabaseException(AppException):
    """
    Database operation errors (HTTP 500)

    Raised when the backing store is unreachable for a whole run; the
    external scheduler retries the job wholesale.
    """
    status_code = 500
    error_type = 'DatabaseError'
