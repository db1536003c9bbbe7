"""Group membership services."""

from train.services.groups.user_groups_index import UserGroupsIndex
from train.services.groups.membership_service import MembershipService

__all__ = ["UserGroupsIndex", "MembershipService"]
