"""
Train services.

Relationship services organized by feature.
"""

# Relationship storage
from train.services.relationships.store import GroupStore, FollowGraphStore

# Group services
from train.services.groups.user_groups_index import UserGroupsIndex
from train.services.groups.membership_service import MembershipService

# Follow services
from train.services.follows.profile_service import UserProfileService
from train.services.follows.follow_service import FollowService

__all__ = [
    "GroupStore",
    "FollowGraphStore",
    "UserGroupsIndex",
    "MembershipService",
    "UserProfileService",
    "FollowService",
]
