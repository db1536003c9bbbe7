"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection with Beanie ODM
- auth: Bearer token verification (JWT)
- utils: Standard responses and exceptions
- config: Base settings class
"""

from common.database import MongoDB, BaseDocument
from common.auth import AuthProvider, JWTAuth, create_auth_dependency
from common.utils import (
    success_response,
    list_response,
    APIException,
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    DatabaseException,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    "BaseDocument",
    # Auth
    "AuthProvider",
    "JWTAuth",
    "create_auth_dependency",
    # Utils
    "success_response",
    "list_response",
    "APIException",
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "DatabaseException",
    # Config
    "BaseAppSettings",
]
