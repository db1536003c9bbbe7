"""Pydantic request/response schemas."""

from train.schemas.groups import (
    CreateGroupRequest,
    UpdateGroupProfileRequest,
    GroupResponse,
)
from train.schemas.follows import (
    FollowGraphResponse,
    UpdateAccountTypeRequest,
    UserProfileResponse,
)

__all__ = [
    "CreateGroupRequest",
    "UpdateGroupProfileRequest",
    "GroupResponse",
    "FollowGraphResponse",
    "UpdateAccountTypeRequest",
    "UserProfileResponse",
]
