"""
Conditional-write storage for relationship records.

A relationship record holds three disjoint sets of user ids keyed by a
single document: an authority set (group owners), an accepted set
(group members / followers) and a pending set (join or follow requests).
Every transition is one find_one_and_update whose filter carries the
precondition, so concurrent callers cannot both apply the same move;
the loser gets None back and re-reads the record to learn why.

GroupStore and FollowGraphStore bind the generic store to their
collections. Services take the concrete type they need so a follow graph
can never be passed where a group is expected.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, List, Set, Iterable

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from common.database.base_document import utcnow
from common.utils.exceptions import BadRequestException, DatabaseException

logger = logging.getLogger(__name__)


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    """
    Parse a user or group identifier.

    Raises:
        BadRequestException: If the value is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    # ObjectId(None) would mint a fresh id
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise BadRequestException(message=f"Invalid {label}", code="INVALID_ID")
    return ObjectId(value)


class Relation(str, Enum):
    """Where a user sits in a relationship record."""

    UNRELATED = "unrelated"
    AUTHORITY = "authority"
    ACCEPTED = "accepted"
    PENDING = "pending"


@dataclass(frozen=True)
class RelationshipSchema:
    """Field layout of a relationship collection."""

    collection: str
    key_field: str
    accepted_field: str
    pending_field: str = "requests"
    authority_field: Optional[str] = None


class RelationshipStore:
    """
    Generic store for one relationship collection.

    Subclasses set ``schema``. Transition methods return the updated
    document, or None when the precondition no longer held.
    """

    schema: RelationshipSchema

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize the store.

        Args:
            db: MongoDB database connection
        """
        self._collection = db[self.schema.collection]

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    @contextmanager
    def _storage_errors(self, action: str):
        try:
            yield
        except PyMongoError as e:
            logger.error(f"{action} on {self.schema.collection} failed: {e}")
            raise DatabaseException.from_pymongo_error(e) from e

    def _key(self, key: ObjectId) -> Dict[str, Any]:
        return {self.schema.key_field: key}

    def _empty_sets(self) -> Dict[str, List]:
        fields = [self.schema.accepted_field, self.schema.pending_field]
        if self.schema.authority_field:
            fields.append(self.schema.authority_field)
        return {field: [] for field in fields}

    def relation_of(self, record: Optional[Dict[str, Any]], user_id: ObjectId) -> Relation:
        """Classify user_id against a loaded record."""
        if not record:
            return Relation.UNRELATED
        if self.schema.authority_field and user_id in record.get(self.schema.authority_field, []):
            return Relation.AUTHORITY
        if user_id in record.get(self.schema.accepted_field, []):
            return Relation.ACCEPTED
        if user_id in record.get(self.schema.pending_field, []):
            return Relation.PENDING
        return Relation.UNRELATED

    async def _transition(
        self,
        action: str,
        key: ObjectId,
        precondition: Dict[str, Any],
        update: Dict[str, Any],
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        query = {**self._key(key), **precondition, **(conditions or {})}
        update.setdefault("$set", {})["updatedAt"] = utcnow()
        with self._storage_errors(action):
            return await self._collection.find_one_and_update(
                query,
                update,
                return_document=ReturnDocument.AFTER,
            )

    # ─────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────

    async def load(self, key: ObjectId) -> Optional[Dict[str, Any]]:
        """Load the current record for key, or None."""
        with self._storage_errors("load"):
            return await self._collection.find_one(self._key(key))

    async def ensure(self, key: ObjectId) -> None:
        """Create an empty record for key if none exists."""
        now = utcnow()
        with self._storage_errors("ensure"):
            await self._collection.update_one(
                self._key(key),
                {"$setOnInsert": {**self._empty_sets(), "createdAt": now, "updatedAt": now}},
                upsert=True,
            )

    # ─────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────

    async def admit(
        self,
        key: ObjectId,
        user_id: ObjectId,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Unrelated/pending -> accepted. Clears any pending request."""
        precondition = {self.schema.accepted_field: {"$ne": user_id}}
        if self.schema.authority_field:
            precondition[self.schema.authority_field] = {"$ne": user_id}
        return await self._transition(
            "admit",
            key,
            precondition,
            {
                "$addToSet": {self.schema.accepted_field: user_id},
                "$pull": {self.schema.pending_field: user_id},
            },
            conditions,
        )

    async def enqueue(
        self,
        key: ObjectId,
        user_id: ObjectId,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Unrelated -> pending."""
        precondition = {
            self.schema.accepted_field: {"$ne": user_id},
            self.schema.pending_field: {"$ne": user_id},
        }
        if self.schema.authority_field:
            precondition[self.schema.authority_field] = {"$ne": user_id}
        return await self._transition(
            "enqueue",
            key,
            precondition,
            {"$addToSet": {self.schema.pending_field: user_id}},
            conditions,
        )

    def _actor_precondition(self, actor_id: Optional[ObjectId]) -> Dict[str, Any]:
        if actor_id is None or not self.schema.authority_field:
            return {}
        return {self.schema.authority_field: actor_id}

    async def promote(
        self,
        key: ObjectId,
        user_id: ObjectId,
        actor_id: Optional[ObjectId] = None,
    ) -> Optional[Dict[str, Any]]:
        """Pending -> accepted, optionally only while actor_id holds authority."""
        return await self._transition(
            "promote",
            key,
            {self.schema.pending_field: user_id, **self._actor_precondition(actor_id)},
            {
                "$pull": {self.schema.pending_field: user_id},
                "$addToSet": {self.schema.accepted_field: user_id},
            },
        )

    async def discard(
        self,
        key: ObjectId,
        user_id: ObjectId,
        actor_id: Optional[ObjectId] = None,
    ) -> Optional[Dict[str, Any]]:
        """Pending -> unrelated."""
        return await self._transition(
            "discard",
            key,
            {self.schema.pending_field: user_id, **self._actor_precondition(actor_id)},
            {"$pull": {self.schema.pending_field: user_id}},
        )

    async def expel(
        self,
        key: ObjectId,
        user_id: ObjectId,
        actor_id: Optional[ObjectId] = None,
    ) -> Optional[Dict[str, Any]]:
        """Accepted -> unrelated."""
        return await self._transition(
            "expel",
            key,
            {self.schema.accepted_field: user_id, **self._actor_precondition(actor_id)},
            {"$pull": {self.schema.accepted_field: user_id}},
        )


class GroupStore(RelationshipStore):
    """Group records: owners hold authority over members and join requests."""

    schema = RelationshipSchema(
        collection="groups",
        key_field="_id",
        accepted_field="members",
        pending_field="requests",
        authority_field="owners",
    )

    async def insert(self, document: Dict[str, Any]) -> ObjectId:
        """Insert a new group document and return its id."""
        with self._storage_errors("insert"):
            result = await self._collection.insert_one(document)
        return result.inserted_id

    async def resign_owner(self, group_id: ObjectId, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Drop user_id from owners while at least one other owner remains."""
        return await self._transition(
            "resign_owner",
            group_id,
            {"owners": user_id, "owners.1": {"$exists": True}},
            {"$pull": {"owners": user_id}},
        )

    async def update_profile(
        self,
        group_id: ObjectId,
        actor_id: ObjectId,
        fields: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """$set display fields while actor_id is an owner."""
        return await self._transition(
            "update_profile",
            group_id,
            {"owners": actor_id},
            {"$set": dict(fields)},
        )

    async def delete_if_owner(self, group_id: ObjectId, actor_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Delete the group while actor_id is an owner; returns the deleted document."""
        with self._storage_errors("delete"):
            return await self._collection.find_one_and_delete({"_id": group_id, "owners": actor_id})

    async def find_by_ids(self, group_ids: Iterable[ObjectId]) -> List[Dict[str, Any]]:
        ids = list(group_ids)
        if not ids:
            return []
        with self._storage_errors("find_by_ids"):
            cursor = self._collection.find({"_id": {"$in": ids}})
            return await cursor.to_list(length=len(ids))

    async def find_ids_for_participant(self, user_id: ObjectId) -> Set[ObjectId]:
        """Ids of every group where user_id is an owner or a member."""
        with self._storage_errors("find_ids_for_participant"):
            ids = await self._collection.distinct(
                "_id",
                {"$or": [{"owners": user_id}, {"members": user_id}]},
            )
        return set(ids)

    async def distinct_participants(self) -> Set[ObjectId]:
        """Every user id that owns or belongs to at least one group."""
        with self._storage_errors("distinct_participants"):
            owners = await self._collection.distinct("owners")
            members = await self._collection.distinct("members")
        return set(owners) | set(members)


class FollowGraphStore(RelationshipStore):
    """
    Follow graph records keyed by userId.

    The followee's record is authoritative for an edge (followers and
    requests); the follower's ``following`` list is a mirror written
    second.
    """

    schema = RelationshipSchema(
        collection="follows",
        key_field="userId",
        accepted_field="followers",
        pending_field="requests",
    )

    def _empty_sets(self) -> Dict[str, List]:
        return {**super()._empty_sets(), "following": []}

    async def add_following(self, user_id: ObjectId, followee_ids: Iterable[ObjectId]) -> None:
        ids = list(followee_ids)
        now = utcnow()
        with self._storage_errors("add_following"):
            await self._collection.update_one(
                {"userId": user_id},
                {
                    "$addToSet": {"following": {"$each": ids}},
                    "$set": {"updatedAt": now},
                    "$setOnInsert": {"followers": [], "requests": [], "createdAt": now},
                },
                upsert=True,
            )

    async def remove_following(self, user_id: ObjectId, followee_ids: Iterable[ObjectId]) -> None:
        ids = list(followee_ids)
        with self._storage_errors("remove_following"):
            await self._collection.update_one(
                {"userId": user_id},
                {
                    "$pull": {"following": {"$in": ids}},
                    "$set": {"updatedAt": utcnow()},
                },
            )

    async def find_followees_of(self, user_id: ObjectId) -> Set[ObjectId]:
        """Users whose authoritative followers list contains user_id."""
        with self._storage_errors("find_followees_of"):
            ids = await self._collection.distinct("userId", {"followers": user_id})
        return set(ids)

    async def distinct_users(self) -> Set[ObjectId]:
        """Every user with a graph record or listed as someone's follower."""
        with self._storage_errors("distinct_users"):
            keyed = await self._collection.distinct("userId")
            followers = await self._collection.distinct("followers")
        return set(keyed) | set(followers)
