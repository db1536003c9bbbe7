"""
Per-user follow graph document.

Invariant across records: A in B.followers <=> B in A.following.
"""

from typing import List

from beanie import PydanticObjectId
from pydantic import Field
from pymongo import IndexModel, ASCENDING

from common.database import BaseDocument


class FollowGraph(BaseDocument):
    """Followers, followees and pending follow requests of one user."""

    userId: PydanticObjectId
    following: List[PydanticObjectId] = Field(default_factory=list)
    followers: List[PydanticObjectId] = Field(default_factory=list)
    requests: List[PydanticObjectId] = Field(default_factory=list)

    class Settings:
        name = "follows"
        indexes = [
            IndexModel([("userId", ASCENDING)], unique=True),
            IndexModel([("followers", ASCENDING)]),
        ]
