"""User profile document (visibility settings only)."""

from beanie import PydanticObjectId
from pymongo import IndexModel, ASCENDING

from common.database import BaseDocument
from train.models.enums import ProfileAccess


class UserProfile(BaseDocument):
    userId: PydanticObjectId
    accountType: ProfileAccess = ProfileAccess.PUBLIC

    class Settings:
        name = "userprofiles"
        indexes = [
            IndexModel([("userId", ASCENDING)], unique=True),
        ]
