"""
Pydantic models for group request/response validation.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from train.models.enums import ProfileAccess


class CreateGroupRequest(BaseModel):
    """Request body for creating a group."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=200)
    tags: List[str] = Field(default_factory=list)
    accountType: Optional[ProfileAccess] = None


class UpdateGroupProfileRequest(BaseModel):
    """Request body for updating a group's display metadata and access type."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=200)
    tags: Optional[List[str]] = None
    accountType: Optional[ProfileAccess] = None


class GroupResponse(BaseModel):
    """Group in API responses."""
    id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    tags: List[str] = []
    accountType: ProfileAccess
    owners: List[str]
    members: List[str]
    requests: List[str]
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any], viewer_id: str) -> "GroupResponse":
        """
        Build the response as seen by viewer_id.

        Join requests are listed only for owners; members of a private
        group only for its owners and members.
        """
        owners = [str(uid) for uid in doc.get("owners", [])]
        members = [str(uid) for uid in doc.get("members", [])]
        is_owner = viewer_id in owners
        if not is_owner and viewer_id not in members and doc.get("accountType") == ProfileAccess.PRIVATE:
            members = []

        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            description=doc.get("description"),
            location=doc.get("location"),
            tags=doc.get("tags", []),
            accountType=doc.get("accountType", ProfileAccess.PUBLIC),
            owners=owners,
            members=members,
            requests=[str(uid) for uid in doc.get("requests", [])] if is_owner else [],
            createdAt=doc.get("createdAt"),
            updatedAt=doc.get("updatedAt"),
        )
