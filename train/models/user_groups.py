"""Reverse index of the groups a user belongs to."""

from typing import List

from beanie import PydanticObjectId
from pydantic import Field
from pymongo import IndexModel, ASCENDING

from common.database import BaseDocument


class UserGroups(BaseDocument):
    userId: PydanticObjectId
    groups: List[PydanticObjectId] = Field(default_factory=list)

    class Settings:
        name = "usergroups"
        indexes = [
            IndexModel([("userId", ASCENDING)], unique=True),
        ]
