"""
Custom Exception Classes for eventhub

Every failure a command can end in is an ``EventHubError`` carrying the
status code and message that the router relays back to the caller.
"""

from typing import Any

from fastapi import status


class EventHubError(Exception):
    """Base exception class for all eventhub errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Command Envelope Exceptions
# ============================================================================


class InvalidCommandError(EventHubError):
    """Raised when a frame is malformed or no handler exists for (ops, code)"""

    def __init__(self, message: str = "Invalid command", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidSignatureError(EventHubError):
    """Raised when the command signature does not verify"""

    def __init__(self, message: str = "Invalid command signature"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


class UnsupportedOperationError(EventHubError):
    """Raised when a handler receives a code it does not serve"""

    def __init__(self, code: int, expected: int):
        super().__init__(
            message=f"Unsupported code {code}, only {expected} is accepted",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"code": code, "expected": expected},
        )


# ============================================================================
# Browse Ledger Exceptions
# ============================================================================


class MissingTargetError(EventHubError):
    """Raised when a browse command carries no targetId"""

    def __init__(self, message: str = "targetId must not be empty"):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


class ClockSkewTooLargeError(EventHubError):
    """Raised when the client timestamp is too far from server time"""

    def __init__(self, skew_seconds: float, max_seconds: float):
        super().__init__(
            message="Client time differs too much from server time",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"skew_seconds": round(skew_seconds, 3), "max_seconds": max_seconds},
        )


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(EventHubError):
    """Base class for resource not found errors"""

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user is not found"""

    def __init__(self, pubkey: str | None = None):
        super().__init__(resource_type="User", resource_id=pubkey)


class EventNotFoundError(ResourceNotFoundError):
    """Raised when an event is not found or not owned by the caller"""

    def __init__(self, event_id: Any | None = None):
        super().__init__(resource_type="Event", resource_id=event_id)


class DuplicateResourceError(EventHubError):
    """Raised when attempting to create a duplicate resource"""

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


# ============================================================================
# Storage Exceptions
# ============================================================================


class StorageError(EventHubError):
    """Raised when a database operation fails"""

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
