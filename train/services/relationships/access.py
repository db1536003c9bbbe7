"""
Authorization gate for relationship transitions.

Side-effect-free checks evaluated against a record loaded immediately
before the write they guard. Each check returns None or raises.
"""

import logging
from typing import Dict, Any

from bson import ObjectId

from common.utils.exceptions import BadRequestException, ForbiddenException
from train.models.enums import ProfileAccess

logger = logging.getLogger(__name__)


def _access_of(record: Dict[str, Any]) -> str:
    return record.get("accountType", ProfileAccess.PUBLIC.value)


def is_public(record: Dict[str, Any]) -> bool:
    return _access_of(record) == ProfileAccess.PUBLIC


def is_private(record: Dict[str, Any]) -> bool:
    return _access_of(record) == ProfileAccess.PRIVATE


def is_owner(group: Dict[str, Any], user_id: ObjectId) -> bool:
    return user_id in group.get("owners", [])


def require_group_public(group: Dict[str, Any]) -> None:
    """Direct joins are only legal on public groups."""
    if not is_public(group):
        logger.warning(f"Rejected direct join of private group {group.get('_id')}")
        raise BadRequestException(
            message="Cannot join private group",
            code="GROUP_NOT_PUBLIC",
        )


def require_group_private(group: Dict[str, Any]) -> None:
    """Join requests are only legal on private groups."""
    if not is_private(group):
        logger.warning(f"Rejected join request to public group {group.get('_id')}")
        raise BadRequestException(
            message="Cannot request to join public group",
            code="GROUP_NOT_PRIVATE",
        )


def require_owner(group: Dict[str, Any], user_id: ObjectId) -> None:
    if not is_owner(group, user_id):
        logger.warning(f"User {user_id} is not an owner of group {group.get('_id')}")
        raise ForbiddenException(
            message="Only group owners can perform this action",
            code="NOT_GROUP_OWNER",
        )


def require_account_public(profile: Dict[str, Any]) -> None:
    """Direct follows are only legal on public accounts."""
    if not is_public(profile):
        raise BadRequestException(
            message="Cannot follow private account directly",
            code="PRIVATE_ACCOUNT_FOLLOW_REQUEST",
        )


def require_account_private(profile: Dict[str, Any]) -> None:
    """Follow requests are only legal on private accounts."""
    if not is_private(profile):
        raise BadRequestException(
            message="Cannot request to follow public account",
            code="ACCOUNT_NOT_PRIVATE",
        )


def require_distinct_users(followee_id: ObjectId, follower_id: ObjectId) -> None:
    if followee_id == follower_id:
        raise BadRequestException(
            message="Cannot follow yourself",
            code="CANNOT_FOLLOW_SELF",
        )
