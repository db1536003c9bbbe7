"""
Group membership service.

Owns the per-(group, user) state machine:

    Unrelated --join (public)--------------------> Member
    Unrelated --request (private)----------------> Requested
    Requested --accept (owner)-------------------> Member
    Requested --reject (owner)-------------------> Unrelated
    Member    --leave / remove (owner)-----------> Unrelated
    Owner     --leave (only if another owner)----> Unrelated

Every transition loads the group, runs the authorization gate, then
issues one conditional write carrying the same precondition. If the
write misses, the group is re-read and the gate re-run to report why.
The reverse index is updated afterwards as a separate idempotent write;
a failure there is logged and left to reconciliation.
"""

import logging
from typing import Optional, List, Dict, Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.database.base_document import utcnow
from common.utils.exceptions import (
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from train.models.enums import ProfileAccess
from train.services.groups.user_groups_index import UserGroupsIndex
from train.services.relationships.access import (
    require_group_public,
    require_group_private,
    require_owner,
)
from train.services.relationships.store import GroupStore, Relation, to_object_id

logger = logging.getLogger(__name__)

GROUP_PROFILE_FIELDS = ("name", "description", "location", "tags", "accountType")


class MembershipService:
    """
    Handles group creation, membership transitions and group profile edits.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        user_groups_index: Optional[UserGroupsIndex] = None,
        logger: Optional[logging.Logger] = None,
        default_access: ProfileAccess = ProfileAccess.PUBLIC,
    ):
        """
        Initialize MembershipService.

        Args:
            db: MongoDB database connection
            user_groups_index: Reverse index maintainer (built from db if omitted)
            logger: Logger to report through (defaults to the module logger)
            default_access: accountType of new groups that don't specify one
        """
        self._groups = GroupStore(db)
        self._index = user_groups_index or UserGroupsIndex(db, group_store=self._groups)
        self._logger = logger or logging.getLogger(__name__)
        self._default_access = ProfileAccess(default_access)

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    async def _load(self, group_id: ObjectId) -> Dict[str, Any]:
        group = await self._groups.load(group_id)
        if not group:
            self._logger.warning(f"Group not found: {group_id}")
            raise NotFoundException(message="Group not found", code="GROUP_NOT_FOUND")
        return group

    def _concurrent_change(self, group_id: ObjectId) -> ConflictException:
        self._logger.warning(f"Group {group_id} changed during update")
        return ConflictException(
            message="Group was modified concurrently, please retry",
            code="CONCURRENT_MODIFICATION",
        )

    async def _index_add(self, user_id: ObjectId, group_id: ObjectId) -> None:
        try:
            await self._index.add_group(user_id, group_id)
        except DatabaseException as e:
            self._logger.error(
                f"Group {group_id} not added to index of user {user_id}, "
                f"left for reconciliation: {e.message}"
            )

    async def _index_remove(self, user_id: ObjectId, group_id: ObjectId) -> None:
        try:
            await self._index.remove_group(user_id, group_id)
        except DatabaseException as e:
            self._logger.error(
                f"Group {group_id} not removed from index of user {user_id}, "
                f"left for reconciliation: {e.message}"
            )

    @staticmethod
    def _profile_fields(attrs: Dict[str, Any]) -> Dict[str, Any]:
        fields = {}
        for name in GROUP_PROFILE_FIELDS:
            value = attrs.get(name)
            if value is None:
                continue
            if name == "accountType":
                value = ProfileAccess(value).value
            fields[name] = value
        return fields

    # ─────────────────────────────────────────────────────────────────
    # Preconditions
    # ─────────────────────────────────────────────────────────────────

    def _check_join(self, group: Dict[str, Any], user_id: ObjectId) -> None:
        require_group_public(group)
        if self._groups.relation_of(group, user_id) in (Relation.AUTHORITY, Relation.ACCEPTED):
            self._logger.warning(f"User {user_id} is already part of group {group['_id']}")
            raise ConflictException(
                message="User is already part of this group",
                code="ALREADY_GROUP_MEMBER",
            )

    def _check_request(self, group: Dict[str, Any], user_id: ObjectId) -> None:
        require_group_private(group)
        relation = self._groups.relation_of(group, user_id)
        if relation in (Relation.AUTHORITY, Relation.ACCEPTED):
            raise ConflictException(
                message="User is already part of this group",
                code="ALREADY_GROUP_MEMBER",
            )
        if relation == Relation.PENDING:
            self._logger.warning(f"User {user_id} already requested to join group {group['_id']}")
            raise ConflictException(
                message="User has already requested to join this group",
                code="JOIN_REQUEST_ALREADY_SENT",
            )

    def _check_pending(self, group: Dict[str, Any], requester_id: ObjectId, actor_id: ObjectId) -> None:
        require_owner(group, actor_id)
        if self._groups.relation_of(group, requester_id) != Relation.PENDING:
            self._logger.warning(f"User {requester_id} has no pending request for group {group['_id']}")
            raise NotFoundException(
                message="User has no pending join request",
                code="JOIN_REQUEST_NOT_FOUND",
            )

    def _check_removable(self, group: Dict[str, Any], member_id: ObjectId, actor_id: ObjectId) -> None:
        require_owner(group, actor_id)
        relation = self._groups.relation_of(group, member_id)
        if relation == Relation.AUTHORITY:
            raise BadRequestException(
                message="Cannot remove group owner",
                code="CANNOT_REMOVE_OWNER",
            )
        if relation != Relation.ACCEPTED:
            raise NotFoundException(
                message="User is not a member of this group",
                code="NOT_GROUP_MEMBER",
            )

    def _check_leave(self, group: Dict[str, Any], user_id: ObjectId) -> Relation:
        relation = self._groups.relation_of(group, user_id)
        if relation == Relation.AUTHORITY and len(group.get("owners", [])) <= 1:
            self._logger.warning(f"Last owner {user_id} tried to leave group {group['_id']}")
            raise ConflictException(
                message="The last owner cannot leave the group",
                code="LAST_OWNER",
            )
        if relation not in (Relation.AUTHORITY, Relation.ACCEPTED):
            raise NotFoundException(
                message="User is not a member of this group",
                code="NOT_GROUP_MEMBER",
            )
        return relation

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    async def get_group(self, group_id: str) -> Dict[str, Any]:
        """Get group by ID."""
        return await self._load(to_object_id(group_id, "group id"))

    async def get_user_groups(self, user_id: str) -> List[Dict[str, Any]]:
        """Groups the user owns or belongs to, resolved through the reverse index."""
        group_ids = await self._index.get_group_ids(to_object_id(user_id, "user id"))
        return await self._groups.find_by_ids(group_ids)

    # ─────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────

    async def create_group(self, requester_id: str, attrs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a group owned solely by the requester.

        Args:
            requester_id: User creating the group
            attrs: name (required), description, location, tags, accountType

        Returns:
            The stored group document
        """
        owner_id = to_object_id(requester_id, "user id")
        now = utcnow()

        group_doc = {
            "name": attrs["name"],
            "description": None,
            "location": None,
            "tags": [],
            "accountType": self._default_access.value,
            **self._profile_fields(attrs),
            "owners": [owner_id],
            "members": [],
            "requests": [],
            "createdAt": now,
            "updatedAt": now,
        }

        group_doc["_id"] = await self._groups.insert(group_doc)
        await self._index_add(owner_id, group_doc["_id"])

        self._logger.info(f"Group {group_doc['_id']} created by {owner_id}")
        return group_doc

    async def join_group(self, group_id: str, user_id: str) -> Dict[str, Any]:
        """
        Join a public group directly.

        Raises:
            NotFoundException: Group doesn't exist
            BadRequestException: Group is private
            ConflictException: User is already an owner or member
        """
        gid = to_object_id(group_id, "group id")
        uid = to_object_id(user_id, "user id")

        self._check_join(await self._load(gid), uid)

        updated = await self._groups.admit(gid, uid, conditions={"accountType": ProfileAccess.PUBLIC.value})
        if updated is None:
            self._check_join(await self._load(gid), uid)
            raise self._concurrent_change(gid)

        await self._index_add(uid, gid)

        self._logger.info(f"User {uid} joined group {gid}")
        return updated

    async def request_to_join(self, group_id: str, user_id: str) -> Dict[str, Any]:
        """
        Ask to join a private group.

        Raises:
            NotFoundException: Group doesn't exist
            BadRequestException: Group is public
            ConflictException: Already a participant or already requested
        """
        gid = to_object_id(group_id, "group id")
        uid = to_object_id(user_id, "user id")

        self._check_request(await self._load(gid), uid)

        updated = await self._groups.enqueue(gid, uid, conditions={"accountType": ProfileAccess.PRIVATE.value})
        if updated is None:
            self._check_request(await self._load(gid), uid)
            raise self._concurrent_change(gid)

        self._logger.info(f"User {uid} requested to join group {gid}")
        return updated

    async def accept_join_request(self, group_id: str, requester_id: str, actor_id: str) -> Dict[str, Any]:
        """
        Move a pending requester into members.

        Raises:
            ForbiddenException: Actor is not an owner
            NotFoundException: Group or pending request doesn't exist
        """
        gid = to_object_id(group_id, "group id")
        rid = to_object_id(requester_id, "requester id")
        aid = to_object_id(actor_id, "user id")

        self._check_pending(await self._load(gid), rid, aid)

        updated = await self._groups.promote(gid, rid, actor_id=aid)
        if updated is None:
            self._check_pending(await self._load(gid), rid, aid)
            raise self._concurrent_change(gid)

        await self._index_add(rid, gid)

        self._logger.info(f"Join request of {rid} accepted for group {gid} by {aid}")
        return updated

    async def reject_join_request(self, group_id: str, requester_id: str, actor_id: str) -> Dict[str, Any]:
        """
        Drop a pending request without admitting the requester.

        Raises:
            ForbiddenException: Actor is not an owner
            NotFoundException: Group or pending request doesn't exist
        """
        gid = to_object_id(group_id, "group id")
        rid = to_object_id(requester_id, "requester id")
        aid = to_object_id(actor_id, "user id")

        self._check_pending(await self._load(gid), rid, aid)

        updated = await self._groups.discard(gid, rid, actor_id=aid)
        if updated is None:
            self._check_pending(await self._load(gid), rid, aid)
            raise self._concurrent_change(gid)

        self._logger.info(f"Join request of {rid} rejected for group {gid} by {aid}")
        return updated

    async def leave_group(self, group_id: str, user_id: str) -> Dict[str, Any]:
        """
        Leave a group as a member, or as an owner while another owner remains.

        Raises:
            NotFoundException: Group doesn't exist or user isn't a participant
            ConflictException: User is the last owner
        """
        gid = to_object_id(group_id, "group id")
        uid = to_object_id(user_id, "user id")

        relation = self._check_leave(await self._load(gid), uid)

        if relation == Relation.AUTHORITY:
            updated = await self._groups.resign_owner(gid, uid)
        else:
            updated = await self._groups.expel(gid, uid)

        if updated is None:
            self._check_leave(await self._load(gid), uid)
            raise self._concurrent_change(gid)

        await self._index_remove(uid, gid)

        self._logger.info(f"User {uid} left group {gid}")
        return updated

    async def remove_member(self, group_id: str, member_id: str, actor_id: str) -> Dict[str, Any]:
        """
        Remove a member on an owner's behalf.

        Raises:
            ForbiddenException: Actor is not an owner
            BadRequestException: Target is an owner
            NotFoundException: Group doesn't exist or target isn't a member
        """
        gid = to_object_id(group_id, "group id")
        mid = to_object_id(member_id, "member id")
        aid = to_object_id(actor_id, "user id")

        self._check_removable(await self._load(gid), mid, aid)

        updated = await self._groups.expel(gid, mid, actor_id=aid)
        if updated is None:
            self._check_removable(await self._load(gid), mid, aid)
            raise self._concurrent_change(gid)

        await self._index_remove(mid, gid)

        self._logger.info(f"Member {mid} removed from group {gid} by {aid}")
        return updated

    async def delete_group(self, group_id: str, actor_id: str) -> None:
        """
        Delete a group and purge it from every participant's index.

        Raises:
            ForbiddenException: Actor is not an owner
            NotFoundException: Group doesn't exist
        """
        gid = to_object_id(group_id, "group id")
        aid = to_object_id(actor_id, "user id")

        require_owner(await self._load(gid), aid)

        deleted = await self._groups.delete_if_owner(gid, aid)
        if deleted is None:
            require_owner(await self._load(gid), aid)
            raise self._concurrent_change(gid)

        participants = [*deleted.get("owners", []), *deleted.get("members", [])]
        try:
            await self._index.remove_group_from_users(participants, gid)
        except DatabaseException as e:
            self._logger.error(
                f"Deleted group {gid} left in {len(participants)} indexes, "
                f"left for reconciliation: {e.message}"
            )

        self._logger.info(f"Group {gid} deleted by {aid}, {len(participants)} participants removed")

    async def update_group_profile(self, group_id: str, attrs: Dict[str, Any], actor_id: str) -> Dict[str, Any]:
        """
        Update display metadata and access type. Never touches owners, members or requests.

        Raises:
            ForbiddenException: Actor is not an owner
            NotFoundException: Group doesn't exist
        """
        gid = to_object_id(group_id, "group id")
        aid = to_object_id(actor_id, "user id")

        group = await self._load(gid)
        require_owner(group, aid)

        fields = self._profile_fields(attrs)
        if not fields:
            return group

        updated = await self._groups.update_profile(gid, aid, fields)
        if updated is None:
            require_owner(await self._load(gid), aid)
            raise self._concurrent_change(gid)

        self._logger.info(f"Group {gid} profile updated by {aid}: {sorted(fields)}")
        return updated
