"""
User profile visibility.

Only the account type lives here; it decides whether followers join
directly (public) or through a request (private).
"""

import logging
from typing import Optional, Dict, Any, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from common.database.base_document import utcnow
from common.utils.exceptions import DatabaseException
from train.models.enums import ProfileAccess
from train.services.relationships.store import to_object_id

logger = logging.getLogger(__name__)


class UserProfileService:
    """Reads and updates account visibility."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self._profiles = db["userprofiles"]

    async def find_profile(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        try:
            return await self._profiles.find_one({"userId": user_id})
        except PyMongoError as e:
            logger.error(f"Failed to load profile {user_id}: {e}")
            raise DatabaseException.from_pymongo_error(e) from e

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        """
        Get a user's profile, falling back to a public default when none is stored.
        """
        uid = to_object_id(user_id, "user id")
        profile = await self.find_profile(uid)
        if profile is None:
            return {"userId": uid, "accountType": ProfileAccess.PUBLIC.value}
        return profile

    async def create_profile(
        self,
        user_id: Union[str, ObjectId],
        account_type: ProfileAccess = ProfileAccess.PUBLIC,
    ) -> Dict[str, Any]:
        """Create the profile if missing; an existing profile is returned unchanged."""
        uid = to_object_id(user_id, "user id")
        now = utcnow()
        try:
            return await self._profiles.find_one_and_update(
                {"userId": uid},
                {
                    "$setOnInsert": {
                        "accountType": ProfileAccess(account_type).value,
                        "createdAt": now,
                        "updatedAt": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Lost a concurrent upsert; the other insert is the profile
            return await self.find_profile(uid)
        except PyMongoError as e:
            logger.error(f"Failed to create profile {uid}: {e}")
            raise DatabaseException.from_pymongo_error(e) from e

    async def update_account_type(self, user_id: str, account_type: ProfileAccess) -> Dict[str, Any]:
        """
        Switch an account between public and private.

        Pending follow requests are kept; the owner still decides on them.
        """
        uid = to_object_id(user_id, "user id")
        now = utcnow()
        try:
            profile = await self._profiles.find_one_and_update(
                {"userId": uid},
                {
                    "$set": {"accountType": ProfileAccess(account_type).value, "updatedAt": now},
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Failed to update profile {uid}: {e}")
            raise DatabaseException.from_pymongo_error(e) from e

        logger.info(f"User {uid} account type set to {profile['accountType']}")
        return profile
