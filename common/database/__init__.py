"""
Database module - async MongoDB connection using Beanie for index creation.

Usage:
    from common.database import MongoDB

    db = MongoDB()
    await db.connect(uri, database_name, DOCUMENT_MODELS)
    groups = db.db["groups"]
"""

from common.database.mongodb import MongoDB
from common.database.base_document import BaseDocument

__all__ = [
    "MongoDB",
    "BaseDocument",
]
