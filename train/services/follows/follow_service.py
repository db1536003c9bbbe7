"""
Follow relationship service.

Per (followee, follower) pair the states are Unrelated, Following and
RequestPending. The followee's graph record is authoritative: its
followers and requests lists are changed by one conditional write. The
follower's ``following`` list mirrors it and is written second; if that
write fails the edge still stands and reconcile_following repairs the
mirror later.
"""

import logging
from typing import Optional, Dict, Any, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.utils.exceptions import (
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from train.services.follows.profile_service import UserProfileService
from train.services.relationships.access import (
    require_account_public,
    require_account_private,
    require_distinct_users,
)
from train.services.relationships.store import FollowGraphStore, Relation, to_object_id

logger = logging.getLogger(__name__)


class FollowService:
    """
    Handles follow, follow-request and unfollow transitions.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        profile_service: Optional[UserProfileService] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize FollowService.

        Args:
            db: MongoDB database connection
            profile_service: Source of account visibility (built from db if omitted)
            logger: Logger to report through (defaults to the module logger)
        """
        self._graphs = FollowGraphStore(db)
        self._profiles = profile_service or UserProfileService(db)
        self._logger = logger or logging.getLogger(__name__)

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _pair(self, followee_id: str, follower_id: str) -> Tuple[ObjectId, ObjectId]:
        followee = to_object_id(followee_id, "followee id")
        follower = to_object_id(follower_id, "follower id")
        require_distinct_users(followee, follower)
        return followee, follower

    async def _load_profiles(self, followee: ObjectId, follower: ObjectId) -> Dict[str, Any]:
        """
        Return the followee's profile, creating public profiles for
        either user on their first follow action.
        """
        followee_profile = await self._profiles.create_profile(followee)
        await self._profiles.create_profile(follower)
        return followee_profile

    def _concurrent_change(self, followee: ObjectId) -> ConflictException:
        self._logger.warning(f"Follow graph of {followee} changed during update")
        return ConflictException(
            message="Follow graph was modified concurrently, please retry",
            code="CONCURRENT_MODIFICATION",
        )

    async def _mirror_add(self, follower: ObjectId, followee: ObjectId) -> None:
        try:
            await self._graphs.add_following(follower, [followee])
        except DatabaseException as e:
            self._logger.error(
                f"Following mirror of {follower} missing {followee}, "
                f"left for reconciliation: {e.message}"
            )

    async def _mirror_remove(self, follower: ObjectId, followee: ObjectId) -> None:
        try:
            await self._graphs.remove_following(follower, [followee])
        except DatabaseException as e:
            self._logger.error(
                f"Following mirror of {follower} still lists {followee}, "
                f"left for reconciliation: {e.message}"
            )

    # ─────────────────────────────────────────────────────────────────
    # Preconditions
    # ─────────────────────────────────────────────────────────────────

    def _check_follow(self, graph: Optional[Dict[str, Any]], follower: ObjectId) -> None:
        if self._graphs.relation_of(graph, follower) == Relation.ACCEPTED:
            self._logger.warning(f"{follower} already follows {graph['userId']}")
            raise ConflictException(message="Already following this user", code="ALREADY_FOLLOWING")

    def _check_request(self, graph: Optional[Dict[str, Any]], follower: ObjectId) -> None:
        self._check_follow(graph, follower)
        if self._graphs.relation_of(graph, follower) == Relation.PENDING:
            raise ConflictException(message="Follow request already sent", code="FOLLOW_REQUEST_ALREADY_SENT")

    def _check_pending(self, graph: Optional[Dict[str, Any]], follower: ObjectId) -> None:
        if self._graphs.relation_of(graph, follower) != Relation.PENDING:
            raise NotFoundException(message="Follow request not found", code="FOLLOW_REQUEST_NOT_FOUND")

    def _check_edge(self, graph: Optional[Dict[str, Any]], follower: ObjectId, message: str, code: str) -> None:
        if self._graphs.relation_of(graph, follower) != Relation.ACCEPTED:
            raise BadRequestException(message=message, code=code)

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    async def get_follow_graph(self, user_id: str) -> Dict[str, Any]:
        """Followers, following and pending requests of a user (empty if none stored)."""
        uid = to_object_id(user_id, "user id")
        graph = await self._graphs.load(uid)
        if graph is None:
            return {"userId": uid, "following": [], "followers": [], "requests": []}
        return graph

    # ─────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────

    async def follow_user(self, follower_id: str, followee_id: str) -> None:
        """
        Follow a public account directly.

        Raises:
            BadRequestException: Self-follow, or the account is private
            ConflictException: Already following
        """
        followee, follower = self._pair(followee_id, follower_id)
        require_account_public(await self._load_profiles(followee, follower))

        graph = await self._graphs.load(followee)
        self._check_follow(graph, follower)
        if graph is None:
            await self._graphs.ensure(followee)

        if await self._graphs.admit(followee, follower) is None:
            self._check_follow(await self._graphs.load(followee), follower)
            raise self._concurrent_change(followee)

        await self._mirror_add(follower, followee)

        self._logger.info(f"User {follower} followed {followee}")

    async def request_to_follow_user(self, follower_id: str, followee_id: str) -> None:
        """
        Ask to follow a private account.

        Raises:
            BadRequestException: Self-follow, or the account is public
            ConflictException: Already following or already requested
        """
        followee, follower = self._pair(followee_id, follower_id)
        require_account_private(await self._load_profiles(followee, follower))

        graph = await self._graphs.load(followee)
        self._check_request(graph, follower)
        if graph is None:
            await self._graphs.ensure(followee)

        if await self._graphs.enqueue(followee, follower) is None:
            self._check_request(await self._graphs.load(followee), follower)
            raise self._concurrent_change(followee)

        self._logger.info(f"User {follower} requested to follow {followee}")

    async def accept_follow_request(self, followee_id: str, follower_id: str) -> None:
        """
        Accept a pending request; the requester starts following.

        Raises:
            BadRequestException: followee and follower are the same user
            NotFoundException: No pending request from follower
        """
        followee, follower = self._pair(followee_id, follower_id)

        self._check_pending(await self._graphs.load(followee), follower)

        if await self._graphs.promote(followee, follower) is None:
            self._check_pending(await self._graphs.load(followee), follower)
            raise self._concurrent_change(followee)

        await self._mirror_add(follower, followee)

        self._logger.info(f"Follow request of {follower} accepted by {followee}")

    async def reject_follow_request(self, followee_id: str, follower_id: str) -> None:
        """
        Reject a pending request; nobody's following list changes.

        Raises:
            BadRequestException: followee and follower are the same user
            NotFoundException: No pending request from follower
        """
        followee, follower = self._pair(followee_id, follower_id)

        self._check_pending(await self._graphs.load(followee), follower)

        if await self._graphs.discard(followee, follower) is None:
            self._check_pending(await self._graphs.load(followee), follower)
            raise self._concurrent_change(followee)

        self._logger.info(f"Follow request of {follower} rejected by {followee}")

    async def _remove_edge(self, followee: ObjectId, follower: ObjectId, message: str, code: str) -> None:
        self._check_edge(await self._graphs.load(followee), follower, message, code)

        if await self._graphs.expel(followee, follower) is None:
            self._check_edge(await self._graphs.load(followee), follower, message, code)
            raise self._concurrent_change(followee)

        await self._mirror_remove(follower, followee)

    async def unfollow_user(self, follower_id: str, followee_id: str) -> None:
        """
        Stop following a user.

        Works even if either profile has since been deleted.

        Raises:
            BadRequestException: Self-unfollow, or not currently following
        """
        followee, follower = self._pair(followee_id, follower_id)
        await self._remove_edge(
            followee,
            follower,
            "Not currently following this user",
            "NOT_CURRENTLY_FOLLOWING",
        )
        self._logger.info(f"User {follower} unfollowed {followee}")

    async def remove_follower(self, followee_id: str, follower_id: str) -> None:
        """
        Remove someone from your followers.

        Raises:
            BadRequestException: Self-removal, or the user isn't a follower
        """
        followee, follower = self._pair(followee_id, follower_id)
        await self._remove_edge(
            followee,
            follower,
            "Follower is not currently following this user",
            "FOLLOWER_NOT_CURRENTLY_FOLLOWING",
        )
        self._logger.info(f"Follower {follower} removed by {followee}")

    # ─────────────────────────────────────────────────────────────────
    # Reconciliation
    # ─────────────────────────────────────────────────────────────────

    async def reconcile_following(self, user_id: ObjectId) -> Dict[str, int]:
        """
        Rebuild a user's following mirror from the followers lists that name them.

        Returns:
            dict with added and removed counts
        """
        # Mirror first: a follow landing between the reads is then added, never pulled
        graph = await self._graphs.load(user_id)
        mirrored = set(graph.get("following", [])) if graph else set()
        actual = await self._graphs.find_followees_of(user_id)

        stale = mirrored - actual
        missing = actual - mirrored

        if stale:
            await self._graphs.remove_following(user_id, stale)
        if missing:
            await self._graphs.add_following(user_id, missing)

        if stale or missing:
            self._logger.info(
                f"Reconciled following for user {user_id}: "
                f"added {len(missing)}, removed {len(stale)}"
            )

        return {"added": len(missing), "removed": len(stale)}

    async def reconcile_all_following(self, batch_size: int = 500) -> Dict[str, Any]:
        """
        Reconcile the following mirror of every user in the follow graph.

        Args:
            batch_size: Users processed between progress log lines

        Returns:
            dict with usersChecked, entriesAdded, entriesRemoved and errors
        """
        results: Dict[str, Any] = {
            "usersChecked": 0,
            "entriesAdded": 0,
            "entriesRemoved": 0,
            "errors": [],
        }

        user_ids = await self._graphs.distinct_users()
        for position, user_id in enumerate(user_ids, start=1):
            try:
                outcome = await self.reconcile_following(user_id)
            except DatabaseException as e:
                error_msg = f"Failed to reconcile following for user {user_id}: {e.message}"
                self._logger.error(error_msg)
                results["errors"].append(error_msg)
                continue
            results["usersChecked"] += 1
            results["entriesAdded"] += outcome["added"]
            results["entriesRemoved"] += outcome["removed"]

            if position % batch_size == 0:
                self._logger.info(f"Following reconciliation: {position}/{len(user_ids)} users")

        return results
