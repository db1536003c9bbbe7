"""
Custom HTTP exceptions with error codes.

Extends FastAPI's HTTPException with standardized error codes
for consistent API error responses.

Example:
    from common.utils import NotFoundException

    group = await groups.find_one({"_id": group_oid})
    if not group:
        raise NotFoundException("Group not found", code="GROUP_NOT_FOUND")
"""

from typing import Optional, Any, Dict

from fastapi import HTTPException
from pymongo.errors import (
    PyMongoError,
    DuplicateKeyError,
    ConnectionFailure,
    ExecutionTimeout,
    ServerSelectionTimeoutError,
)


class APIException(HTTPException):
    """
    Base API exception with error code support.

    Provides consistent error response format across the API.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Create an API exception.

        Args:
            status_code: HTTP status code
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
            headers: Optional response headers
        """
        detail: Dict[str, Any] = {"message": message}

        if code:
            detail["code"] = code

        if details is not None:
            detail["details"] = details

        self.message = message
        self.code = code

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers,
        )


class BadRequestException(APIException):
    """400 Bad Request - Operation not valid for the resource's current state."""

    def __init__(
        self,
        message: str = "Bad request",
        code: str = "BAD_REQUEST",
        details: Optional[Any] = None,
    ):
        super().__init__(400, message, code, details)


class UnauthorizedException(APIException):
    """401 Unauthorized - Missing or invalid authentication."""

    def __init__(
        self,
        message: str = "Unauthorized",
        code: str = "UNAUTHORIZED",
        details: Optional[Any] = None,
    ):
        super().__init__(401, message, code, details)


class ForbiddenException(APIException):
    """403 Forbidden - Valid auth but insufficient permissions."""

    def __init__(
        self,
        message: str = "Forbidden",
        code: str = "FORBIDDEN",
        details: Optional[Any] = None,
    ):
        super().__init__(403, message, code, details)


class NotFoundException(APIException):
    """404 Not Found - Resource doesn't exist."""

    def __init__(
        self,
        message: str = "Not found",
        code: str = "NOT_FOUND",
        details: Optional[Any] = None,
    ):
        super().__init__(404, message, code, details)


class ConflictException(APIException):
    """409 Conflict - Resource already exists or state conflict."""

    def __init__(
        self,
        message: str = "Conflict",
        code: str = "CONFLICT",
        details: Optional[Any] = None,
    ):
        super().__init__(409, message, code, details)


class DatabaseException(APIException):
    """
    Storage or connectivity failure.

    Raised for pymongo failures, never for a rejected transition.
    """

    def __init__(
        self,
        message: str = "Database operation failed",
        code: str = "DATABASE_ERROR",
        status_code: int = 500,
        details: Optional[Any] = None,
    ):
        super().__init__(status_code, message, code, details)

    @classmethod
    def from_pymongo_error(cls, error: PyMongoError) -> "DatabaseException":
        """
        Map a pymongo error onto a DatabaseException.

        Args:
            error: The raised pymongo error

        Returns:
            DatabaseException with a status code matching the failure
        """
        if isinstance(error, DuplicateKeyError):
            return cls(
                message="Duplicate entry",
                code="DUPLICATE_KEY",
                status_code=409,
                details=error.details.get("keyValue") if error.details else None,
            )
        if isinstance(error, (ConnectionFailure, ServerSelectionTimeoutError, ExecutionTimeout)):
            return cls(
                message="Database unavailable",
                code="DATABASE_UNAVAILABLE",
                status_code=503,
            )
        return cls()
