"""
Group document.

owners, members and requests are disjoint sets of user ids; owners is
never empty.
"""

from typing import List, Optional

from beanie import PydanticObjectId
from pydantic import Field
from pymongo import IndexModel, ASCENDING

from common.database import BaseDocument
from train.models.enums import ProfileAccess


class Group(BaseDocument):
    """A training group with owner-administered membership."""

    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    owners: List[PydanticObjectId]
    members: List[PydanticObjectId] = Field(default_factory=list)
    requests: List[PydanticObjectId] = Field(default_factory=list)
    accountType: ProfileAccess = ProfileAccess.PUBLIC

    class Settings:
        name = "groups"
        indexes = [
            IndexModel([("owners", ASCENDING)]),
            IndexModel([("members", ASCENDING)]),
        ]
