"""
Pydantic models for follow graph and account visibility.
"""

from typing import List, Dict, Any

from pydantic import BaseModel

from train.models.enums import ProfileAccess


class FollowGraphResponse(BaseModel):
    """A user's followers, following and pending follow requests."""
    userId: str
    following: List[str]
    followers: List[str]
    requests: List[str]

    @classmethod
    def from_document(cls, doc: Dict[str, Any], include_requests: bool = True) -> "FollowGraphResponse":
        return cls(
            userId=str(doc["userId"]),
            following=[str(uid) for uid in doc.get("following", [])],
            followers=[str(uid) for uid in doc.get("followers", [])],
            requests=[str(uid) for uid in doc.get("requests", [])] if include_requests else [],
        )


class UpdateAccountTypeRequest(BaseModel):
    """Request body for switching an account between public and private."""
    accountType: ProfileAccess


class UserProfileResponse(BaseModel):
    userId: str
    accountType: ProfileAccess

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserProfileResponse":
        return cls(
            userId=str(doc["userId"]),
            accountType=doc.get("accountType", ProfileAccess.PUBLIC),
        )
