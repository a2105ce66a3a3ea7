"""
Core exceptions for the vetconnect-core package.

This module defines the exception hierarchy raised by the profile store,
onboarding state machine, matching engine, workflow manager and
performance monitor.
"""

import logging
import time
import traceback
from typing import Any, Dict, List, Optional


class VetConnectException(Exception):
    """
    Base exception class for all vetconnect-core exceptions.

    Provides a consistent interface for error handling across the package.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": time.time(),
        }

    def get_debug_info(self) -> Dict[str, Any]:
        """
        Get detailed debug information for the exception.

        Returns:
            Dictionary with debug information including traceback
        """
        debug_info = self.to_dict()
        formatted = traceback.format_exc()
        debug_info.update(
            {
                "traceback": (
                    formatted if formatted.strip() != "NoneType: None" else None
                ),
                "module": self.__class__.__module__,
                "class_name": self.__class__.__name__,
            }
        )
        return debug_info

    def log_error(
        self, logger: Optional[logging.Logger] = None, level: int = logging.ERROR
    ) -> None:
        """
        Log the exception with appropriate level and context.

        Args:
            logger: Logger instance to use (creates default if None)
            level: Logging level to use
        """
        if logger is None:
            logger = logging.getLogger(__name__)

        log_data = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

        logger.log(
            level,
            f"Exception occurred: {self.message}",
            extra={"exception_data": log_data},
        )

    def __str__(self) -> str:
        """String representation of the exception."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NotFoundException(VetConnectException):
    """Exception raised when a veterinarian, case, task or alert does not exist."""

    def __init__(
        self,
        message: Optional[str] = None,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
    ):
        """
        Initialize not-found exception.

        Args:
            message: Error message (generated from the resource if omitted)
            resource_type: Kind of resource that was looked up
            resource_id: Identifier that was looked up
        """
        details: Dict[str, Any] = {"resource_type": resource_type}
        if resource_id is not None:
            details["resource_id"] = resource_id

        super().__init__(
            message=message or f"{resource_type.replace('_', ' ').capitalize()} not found",
            error_code="NOT_FOUND",
            details=details,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidTransitionException(VetConnectException):
    """Exception raised when a status change violates the fixed order."""

    def __init__(
        self,
        message: str = "Invalid state transition",
        entity: Optional[str] = None,
        current_state: Optional[str] = None,
        requested_state: Optional[str] = None,
    ):
        """
        Initialize invalid transition exception.

        Args:
            message: Error message
            entity: What is transitioning (e.g. an onboarding step or case id)
            current_state: State before the attempted transition
            requested_state: State that was requested
        """
        details = {}
        if entity:
            details["entity"] = entity
        if current_state:
            details["current_state"] = current_state
        if requested_state:
            details["requested_state"] = requested_state

        super().__init__(
            message=message,
            error_code="INVALID_TRANSITION",
            details=details,
        )


class ValidationException(VetConnectException):
    """Exception raised for missing or invalid input fields."""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        validation_errors: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize validation exception.

        Args:
            message: Error message
            field: Field that failed validation
            value: Value that failed validation
            validation_errors: Detailed validation errors
        """
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if validation_errors:
            details["validation_errors"] = validation_errors

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class CaseConflictException(VetConnectException):
    """Exception raised when a case is already owned by a veterinarian."""

    def __init__(
        self,
        case_id: str,
        owner_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        """
        Initialize case conflict exception.

        Args:
            case_id: Case that could not be claimed
            owner_id: Veterinarian currently holding the case, if known
            message: Optional override for the error message
        """
        details: Dict[str, Any] = {"case_id": case_id}
        if owner_id:
            details["owner_id"] = owner_id

        super().__init__(
            message=message or f"Case {case_id} is already assigned",
            error_code="CASE_CONFLICT",
            details=details,
        )
        self.case_id = case_id
        self.owner_id = owner_id


class PersistenceException(VetConnectException):
    """Base exception for persistence port failures."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize persistence exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
            original_error: Original exception that caused this error
        """
        super().__init__(message, error_code or "PERSISTENCE_ERROR", details)
        self.original_error = original_error

        if original_error and "original_error" not in self.details:
            self.details["original_error"] = str(original_error)


class ConcurrencyException(PersistenceException):
    """Exception raised when an aggregate was modified by a concurrent writer."""

    def __init__(
        self,
        veterinarian_id: str,
        expected_version: int,
        message: str = "Aggregate was modified concurrently",
    ):
        """
        Initialize concurrency exception.

        Args:
            veterinarian_id: Aggregate whose write was rejected
            expected_version: Version the writer read before mutating
            message: Error message
        """
        super().__init__(
            message=message,
            error_code="CONCURRENT_MODIFICATION",
            details={
                "veterinarian_id": veterinarian_id,
                "expected_version": expected_version,
            },
        )


class ConfigurationException(VetConnectException):
    """Exception raised for invalid configuration."""

    def __init__(
        self,
        message: str = "Configuration error",
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
    ):
        """
        Initialize configuration exception.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            config_value: Configuration value (will be sanitized)
        """
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value:
            details["config_value"] = self._sanitize_config_value(
                config_key, config_value
            )

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )

    @staticmethod
    def _sanitize_config_value(key: Optional[str], value: str) -> str:
        """Sanitize configuration values to avoid exposing secrets."""
        if not key:
            return "[REDACTED]"

        sensitive_keys = ["password", "secret", "key", "token", "credential"]
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            return "[REDACTED]"

        return value


class NotificationDeliveryException(VetConnectException):
    """Exception raised by a notification channel when delivery fails."""

    def __init__(
        self,
        message: str = "Notification delivery failed",
        channel: Optional[str] = None,
        notification_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if channel:
            details["channel"] = channel
        if notification_id:
            details["notification_id"] = notification_id
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=message,
            error_code="NOTIFICATION_DELIVERY_ERROR",
            details=details,
        )
        self.original_error = original_error


# Utility functions for exception handling and error formatting


def format_validation_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Format Pydantic validation errors into a user-friendly structure.

    Args:
        errors: List of Pydantic validation errors

    Returns:
        Dictionary mapping field names to lists of error messages
    """
    formatted_errors: Dict[str, List[str]] = {}

    for error in errors:
        field_path = ".".join(str(loc) for loc in error.get("loc", []))
        if not field_path:
            field_path = "root"

        message = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        if error_type == "value_error":
            formatted_message = message
        elif error_type == "missing":
            formatted_message = "This field is required"
        else:
            formatted_message = f"{message} (type: {error_type})"

        formatted_errors.setdefault(field_path, []).append(formatted_message)

    return formatted_errors


def create_error_response(
    exception: VetConnectException,
    include_debug: bool = False,
) -> Dict[str, Any]:
    """
    Create a standardized error response from an exception.

    Args:
        exception: The exception to format
        include_debug: Whether to include debug information

    Returns:
        Standardized error response dictionary
    """
    response: Dict[str, Any] = {
        "success": False,
        "error": {
            "type": exception.__class__.__name__,
            "code": exception.error_code,
            "message": exception.message,
        },
    }

    if exception.details:
        response["error"]["details"] = exception.details

    if include_debug:
        debug_info = exception.get_debug_info()
        response["debug"] = {
            "timestamp": debug_info["timestamp"],
            "module": debug_info["module"],
            "class_name": debug_info["class_name"],
        }

    return response


def log_exception_context(
    exception: Exception,
    context: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with additional context information.

    Args:
        exception: The exception to log
        context: Additional context information
        logger: Logger instance to use
        level: Logging level
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if isinstance(exception, VetConnectException):
        log_data = exception.to_dict()
        log_data["context"] = context
        logger.log(
            level,
            f"Exception with context: {exception.message}",
            extra={"exception_data": log_data},
        )
    else:
        logger.log(
            level,
            f"Unexpected exception: {str(exception)}",
            extra={
                "exception_type": exception.__class__.__name__,
                "exception_message": str(exception),
                "context": context,
            },
        )
