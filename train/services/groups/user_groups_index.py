"""
Reverse index of group memberships.

Keeps one ``usergroups`` document per user listing the groups the user
owns or belongs to, so "my groups" never scans the groups collection.
Writes are idempotent ($addToSet / $pull) and are issued after the
group record has already changed; any drift left by a failed write is
repaired by reconcile_user / reconcile_all.
"""

import logging
from typing import Optional, List, Dict, Any, Iterable

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from common.database.base_document import utcnow
from common.utils.exceptions import DatabaseException
from train.services.relationships.store import GroupStore

logger = logging.getLogger(__name__)


class UserGroupsIndex:
    """
    Maintains the per-user group index.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        group_store: Optional[GroupStore] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize UserGroupsIndex.

        Args:
            db: MongoDB database connection
            group_store: Store used to read authoritative memberships
            logger: Logger to report through (defaults to the module logger)
        """
        self._collection = db["usergroups"]
        self._group_store = group_store or GroupStore(db)
        self._logger = logger or logging.getLogger(__name__)

    async def _write(self, action: str, operation):
        try:
            return await operation
        except PyMongoError as e:
            self._logger.error(f"usergroups {action} failed: {e}")
            raise DatabaseException.from_pymongo_error(e) from e

    async def add_group(self, user_id: ObjectId, group_id: ObjectId) -> None:
        """Record that user_id belongs to group_id."""
        await self.add_groups(user_id, [group_id])

    async def add_groups(self, user_id: ObjectId, group_ids: Iterable[ObjectId]) -> None:
        now = utcnow()
        await self._write(
            "add",
            self._collection.update_one(
                {"userId": user_id},
                {
                    "$addToSet": {"groups": {"$each": list(group_ids)}},
                    "$set": {"updatedAt": now},
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            ),
        )

    async def remove_group(self, user_id: ObjectId, group_id: ObjectId) -> None:
        """Forget that user_id belongs to group_id."""
        await self.remove_groups(user_id, [group_id])

    async def remove_groups(self, user_id: ObjectId, group_ids: Iterable[ObjectId]) -> None:
        await self._write(
            "remove",
            self._collection.update_one(
                {"userId": user_id},
                {
                    "$pull": {"groups": {"$in": list(group_ids)}},
                    "$set": {"updatedAt": utcnow()},
                },
            ),
        )

    async def remove_group_from_users(self, user_ids: Iterable[ObjectId], group_id: ObjectId) -> int:
        """Purge group_id from every listed user's index. Returns modified count."""
        ids = list(user_ids)
        if not ids:
            return 0
        result = await self._write(
            "purge",
            self._collection.update_many(
                {"userId": {"$in": ids}},
                {
                    "$pull": {"groups": group_id},
                    "$set": {"updatedAt": utcnow()},
                },
            ),
        )
        return result.modified_count

    async def get_group_ids(self, user_id: ObjectId) -> List[ObjectId]:
        doc = await self._write("load", self._collection.find_one({"userId": user_id}))
        if not doc:
            return []
        return list(doc.get("groups", []))

    async def reconcile_user(self, user_id: ObjectId) -> Dict[str, int]:
        """
        Repair one user's index against the group records.

        Drops entries for groups the user no longer owns or belongs to
        and adds memberships the index is missing.

        Returns:
            dict with added and removed counts
        """
        # Index first: a join landing between the reads is then added, never pulled
        indexed = set(await self.get_group_ids(user_id))
        actual = await self._group_store.find_ids_for_participant(user_id)

        stale = indexed - actual
        missing = actual - indexed

        if stale:
            await self.remove_groups(user_id, stale)
        if missing:
            await self.add_groups(user_id, missing)

        if stale or missing:
            self._logger.info(
                f"Reconciled groups for user {user_id}: "
                f"added {len(missing)}, removed {len(stale)}"
            )

        return {"added": len(missing), "removed": len(stale)}

    async def reconcile_all(self, batch_size: int = 500) -> Dict[str, Any]:
        """
        Reconcile every user present in the index or in any group.

        Args:
            batch_size: Users processed between progress log lines

        Returns:
            dict with usersChecked, entriesAdded, entriesRemoved and errors
        """
        indexed_users = await self._write("distinct", self._collection.distinct("userId"))
        user_ids = set(indexed_users) | await self._group_store.distinct_participants()

        results: Dict[str, Any] = {
            "usersChecked": 0,
            "entriesAdded": 0,
            "entriesRemoved": 0,
            "errors": [],
        }

        for position, user_id in enumerate(user_ids, start=1):
            try:
                outcome = await self.reconcile_user(user_id)
            except DatabaseException as e:
                error_msg = f"Failed to reconcile groups for user {user_id}: {e.message}"
                self._logger.error(error_msg)
                results["errors"].append(error_msg)
                continue
            results["usersChecked"] += 1
            results["entriesAdded"] += outcome["added"]
            results["entriesRemoved"] += outcome["removed"]

            if position % batch_size == 0:
                self._logger.info(f"Group index reconciliation: {position}/{len(user_ids)} users")

        return results
