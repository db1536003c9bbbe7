"""
Document models.

Registered with Beanie at startup so collection indexes are created.
"""

from train.models.enums import ProfileAccess
from train.models.group import Group
from train.models.follow import FollowGraph
from train.models.user_groups import UserGroups
from train.models.user_profile import UserProfile

DOCUMENT_MODELS = [Group, FollowGraph, UserGroups, UserProfile]

__all__ = [
    "ProfileAccess",
    "Group",
    "FollowGraph",
    "UserGroups",
    "UserProfile",
    "DOCUMENT_MODELS",
]
