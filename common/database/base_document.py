"""
Base document class with common fields for all models.

Provides createdAt and updatedAt timestamps. Field names match the
camelCase keys the services write through raw Motor collections, so
documents written either way share one shape.

Example:
    from common.database import BaseDocument

    class UserGroups(BaseDocument):
        userId: PydanticObjectId
        groups: List[PydanticObjectId] = []

        class Settings:
            name = "usergroups"
"""

from datetime import datetime, timezone
from beanie import Document
from pydantic import Field


def utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class BaseDocument(Document):
    """
    Base document with common fields.

    All documents extending this class will have:
    - createdAt: Timestamp when document was created
    - updatedAt: Timestamp when document was last modified
    """

    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)
