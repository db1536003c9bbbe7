"""Follow relationship services."""

from train.services.follows.profile_service import UserProfileService
from train.services.follows.follow_service import FollowService

__all__ = ["UserProfileService", "FollowService"]
