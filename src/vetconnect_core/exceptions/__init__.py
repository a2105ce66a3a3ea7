"""
Custom exceptions for the vetconnect-core package.

This module defines the exception hierarchy and custom exceptions
used throughout the case routing and onboarding core.
"""

from .core_exceptions import (  # Utility functions
    CaseConflictException,
    ConcurrencyException,
    ConfigurationException,
    InvalidTransitionException,
    NotFoundException,
    NotificationDeliveryException,
    PersistenceException,
    ValidationException,
    VetConnectException,
    create_error_response,
    format_validation_errors,
    log_exception_context,
)

__all__ = [
    # Exception classes
    "VetConnectException",
    "NotFoundException",
    "InvalidTransitionException",
    "ValidationException",
    "CaseConflictException",
    "PersistenceException",
    "ConcurrencyException",
    "ConfigurationException",
    "NotificationDeliveryException",
    # Utility functions
    "format_validation_errors",
    "create_error_response",
    "log_exception_context",
]
