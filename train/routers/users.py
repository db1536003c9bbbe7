"""
FastAPI router for user relationship endpoints.

Provides endpoints for following, follow requests, the follow graph,
the caller's groups and account visibility.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from common.utils import success_response, list_response
from train.dependencies import (
    require_auth,
    get_follow_service,
    get_membership_service,
    get_profile_service,
)
from train.schemas.follows import FollowGraphResponse, UpdateAccountTypeRequest, UserProfileResponse
from train.schemas.groups import GroupResponse
from train.services.follows.follow_service import FollowService
from train.services.follows.profile_service import UserProfileService
from train.services.groups.membership_service import MembershipService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

UserId = Annotated[str, Depends(require_auth)]
Follows = Annotated[FollowService, Depends(get_follow_service)]


# =============================================================================
# Follow graph
# =============================================================================

@router.put("/{followee_id}/follow")
async def follow_user(
    followee_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Follow a public account."""
    await follows.follow_user(user_id, followee_id)
    return success_response(message="Now following user")


@router.put("/{followee_id}/request-follow")
async def request_to_follow(
    followee_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Request to follow a private account."""
    await follows.request_to_follow_user(user_id, followee_id)
    return success_response(message="Follow request sent")


@router.put("/me/follow-requests/{follower_id}/accept")
async def accept_follow_request(
    follower_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Accept a pending follow request addressed to the caller."""
    await follows.accept_follow_request(user_id, follower_id)
    return success_response(message="Follow request accepted")


@router.delete("/me/follow-requests/{follower_id}")
async def reject_follow_request(
    follower_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Reject a pending follow request addressed to the caller."""
    await follows.reject_follow_request(user_id, follower_id)
    return success_response(message="Follow request rejected")


@router.delete("/{followee_id}/follow")
async def unfollow_user(
    followee_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Stop following a user."""
    await follows.unfollow_user(user_id, followee_id)
    return success_response(message="Unfollowed user")


@router.delete("/me/followers/{follower_id}")
async def remove_follower(
    follower_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Remove a follower from the caller's followers."""
    await follows.remove_follower(user_id, follower_id)
    return success_response(message="Follower removed")


@router.get("/{target_id}/follows")
async def get_follow_graph(
    target_id: str,
    user_id: UserId,
    follows: Follows,
):
    """Get a user's followers, following and pending requests. Accepts "me"."""
    target = user_id if target_id == "me" else target_id
    graph = await follows.get_follow_graph(target)
    # Pending requests are visible to the account owner only
    return success_response(
        FollowGraphResponse.from_document(graph, include_requests=target == user_id).model_dump()
    )


# =============================================================================
# Caller's groups and profile
# =============================================================================

@router.get("/me/groups")
async def get_my_groups(
    user_id: UserId,
    memberships: Annotated[MembershipService, Depends(get_membership_service)],
):
    """Get groups the caller owns or belongs to."""
    groups = await memberships.get_user_groups(user_id)
    return list_response([GroupResponse.from_document(g, user_id).model_dump(mode="json") for g in groups])


@router.get("/me/profile")
async def get_my_profile(
    user_id: UserId,
    profiles: Annotated[UserProfileService, Depends(get_profile_service)],
):
    """Get the caller's account visibility."""
    profile = await profiles.get_profile(user_id)
    return success_response(UserProfileResponse.from_document(profile).model_dump(mode="json"))


@router.put("/me/profile/access")
async def update_my_access(
    body: UpdateAccountTypeRequest,
    user_id: UserId,
    profiles: Annotated[UserProfileService, Depends(get_profile_service)],
):
    """Switch the caller's account between public and private."""
    profile = await profiles.update_account_type(user_id, body.accountType)
    return success_response(
        UserProfileResponse.from_document(profile).model_dump(mode="json"),
        message="Account visibility updated",
    )
