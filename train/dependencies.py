"""
FastAPI dependencies for the Train backend.

Provides dependency injection for all services.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from common.auth import AuthProvider, JWTAuth, create_auth_dependency
from train.config import Settings
from train.services.groups.user_groups_index import UserGroupsIndex
from train.services.groups.membership_service import MembershipService
from train.services.follows.profile_service import UserProfileService
from train.services.follows.follow_service import FollowService


# ─────────────────────────────────────────────────────────────────
# Global service instances
# ─────────────────────────────────────────────────────────────────

# Auth
_auth_provider: Optional[AuthProvider] = None

# Groups
_user_groups_index: Optional[UserGroupsIndex] = None
_membership_service: Optional[MembershipService] = None

# Follows
_profile_service: Optional[UserProfileService] = None
_follow_service: Optional[FollowService] = None


# ─────────────────────────────────────────────────────────────────
# Initialization functions
# ─────────────────────────────────────────────────────────────────

def init_auth_services(settings: Settings) -> None:
    """Initialize the token verifier."""
    global _auth_provider

    settings.validate_required()

    _auth_provider = JWTAuth(secret=settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def init_group_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """Initialize group services."""
    global _user_groups_index, _membership_service

    _user_groups_index = UserGroupsIndex(db=db)
    _membership_service = MembershipService(
        db=db,
        user_groups_index=_user_groups_index,
        default_access=settings.DEFAULT_GROUP_ACCESS,
    )


def init_follow_services(db: AsyncIOMotorDatabase) -> None:
    """Initialize follow services."""
    global _profile_service, _follow_service

    _profile_service = UserProfileService(db=db)
    _follow_service = FollowService(db=db, profile_service=_profile_service)


def init_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """
    Initialize all services at application startup.

    Args:
        db: Main MongoDB database connection
        settings: Loaded application settings
    """
    init_auth_services(settings)
    init_group_services(db, settings)
    init_follow_services(db)


# ─────────────────────────────────────────────────────────────────
# Getters
# ─────────────────────────────────────────────────────────────────

def get_auth_provider() -> AuthProvider:
    """Get token verifier instance."""
    if _auth_provider is None:
        raise RuntimeError("Auth services not initialized.")
    return _auth_provider


def get_membership_service() -> MembershipService:
    """Get membership service instance."""
    if _membership_service is None:
        raise RuntimeError("Group services not initialized.")
    return _membership_service


def get_profile_service() -> UserProfileService:
    """Get profile service instance."""
    if _profile_service is None:
        raise RuntimeError("Follow services not initialized.")
    return _profile_service


def get_follow_service() -> FollowService:
    """Get follow service instance."""
    if _follow_service is None:
        raise RuntimeError("Follow services not initialized.")
    return _follow_service


# Resolves the bearer token to the caller's user id
require_auth = create_auth_dependency(get_auth_provider)
