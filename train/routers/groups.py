"""
FastAPI router for group membership endpoints.

Provides endpoints for creating groups, joining, join requests,
leaving, owner administration and group profile edits.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from common.utils import success_response
from train.dependencies import require_auth, get_membership_service
from train.schemas.groups import CreateGroupRequest, UpdateGroupProfileRequest, GroupResponse
from train.services.groups.membership_service import MembershipService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])

UserId = Annotated[str, Depends(require_auth)]
Memberships = Annotated[MembershipService, Depends(get_membership_service)]


def _group_data(group: dict, viewer_id: str) -> dict:
    return GroupResponse.from_document(group, viewer_id).model_dump(mode="json")


@router.post("", status_code=201)
async def create_group(
    body: CreateGroupRequest,
    user_id: UserId,
    memberships: Memberships,
):
    """Create a group owned by the caller."""
    group = await memberships.create_group(user_id, body.model_dump(exclude_none=True))
    return success_response(_group_data(group, user_id), message="Group created")


@router.get("/{group_id}")
async def get_group(
    group_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Get group by ID."""
    group = await memberships.get_group(group_id)
    return success_response(_group_data(group, user_id))


@router.put("/{group_id}/join")
async def join_group(
    group_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Join a public group."""
    group = await memberships.join_group(group_id, user_id)
    return success_response(_group_data(group, user_id), message="Joined group")


@router.put("/{group_id}/request-join")
async def request_to_join(
    group_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Request to join a private group."""
    await memberships.request_to_join(group_id, user_id)
    return success_response(message="Join request sent")


@router.put("/{group_id}/accept-request/{requester_id}")
async def accept_join_request(
    group_id: str,
    requester_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Accept a pending join request (owners only)."""
    group = await memberships.accept_join_request(group_id, requester_id, user_id)
    return success_response(_group_data(group, user_id), message="Join request accepted")


@router.delete("/{group_id}/reject-request/{requester_id}")
async def reject_join_request(
    group_id: str,
    requester_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Reject a pending join request (owners only)."""
    group = await memberships.reject_join_request(group_id, requester_id, user_id)
    return success_response(_group_data(group, user_id), message="Join request rejected")


@router.delete("/{group_id}/leave")
async def leave_group(
    group_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Leave a group."""
    await memberships.leave_group(group_id, user_id)
    return success_response(message="Left group")


@router.delete("/{group_id}/members/{member_id}")
async def remove_member(
    group_id: str,
    member_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Remove a member from a group (owners only)."""
    group = await memberships.remove_member(group_id, member_id, user_id)
    return success_response(_group_data(group, user_id), message="Member removed")


@router.delete("/{group_id}")
async def delete_group(
    group_id: str,
    user_id: UserId,
    memberships: Memberships,
):
    """Delete a group (owners only)."""
    await memberships.delete_group(group_id, user_id)
    return success_response(message="Group deleted")


@router.put("/{group_id}/profile")
async def update_group_profile(
    group_id: str,
    body: UpdateGroupProfileRequest,
    user_id: UserId,
    memberships: Memberships,
):
    """Update a group's name, description, location, tags or access type (owners only)."""
    group = await memberships.update_group_profile(group_id, body.model_dump(exclude_none=True), user_id)
    return success_response(_group_data(group, user_id), message="Group updated")
