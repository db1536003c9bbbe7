"""
MongoDB connection for the API process.

Beanie is initialized with the document models only so their indexes
exist; services work on raw Motor collections from ``MongoDB.db``.
"""

import logging
from typing import List, Type, Optional

from beanie import init_beanie, Document
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


class MongoDB:
    """Owns the Motor client for one database."""

    def __init__(self):
        self._client: Optional[AsyncIOMotorClient] = None
        self._database_name: Optional[str] = None

    async def connect(
        self,
        uri: str,
        database_name: str,
        document_models: List[Type[Document]],
    ) -> None:
        """
        Connect and register document models so their indexes are created.

        Args:
            uri: MongoDB connection string
            database_name: Database holding the relationship collections
            document_models: Beanie Document classes to register
        """
        masked_uri = uri.split("@")[-1]
        logger.info(f"Connecting to MongoDB: {masked_uri}")

        client = AsyncIOMotorClient(uri)
        try:
            await init_beanie(database=client[database_name], document_models=document_models)
        except Exception as e:
            logger.error(f"Failed to initialize {database_name}: {e}")
            client.close()
            raise

        self._client = client
        self._database_name = database_name
        collections = sorted(m.get_settings().name for m in document_models)
        logger.info(f"Connected to {database_name}, indexed collections: {', '.join(collections)}")

    async def disconnect(self) -> None:
        """Close the client; safe to call when not connected."""
        if self._client:
            logger.info(f"Disconnecting from MongoDB database: {self._database_name}")
            self._client.close()
            self._client = None
            self._database_name = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        """The connected Motor database."""
        if not self._client:
            raise RuntimeError("Database not connected")
        return self._client[self._database_name]
