"""Process-lifetime cache of the target database's property schema."""

import asyncio
import logging
from typing import Any, Dict, Optional

from .notion_client import NotionClient

logger = logging.getLogger(__name__)

RemoteSchema = Dict[str, str]


def schema_from_database(database: Dict[str, Any]) -> RemoteSchema:
    """Map property name -> property type from a Notion database object."""
    properties = database.get("properties") or {}
    return {
        name: prop.get("type")
        for name, prop in properties.items()
        if isinstance(prop, dict) and prop.get("type")
    }


class RemoteSchemaCache:
    """
    Fetch the database schema once and share it.

    Concurrent callers during the first fetch await the same retrieval.
    A failed retrieval is not memoized.
    """

    def __init__(self, client: NotionClient, database_id: str):
        self.client = client
        self.database_id = database_id
        self._schema: Optional[RemoteSchema] = None
        self._inflight: Optional["asyncio.Future[RemoteSchema]"] = None

    @property
    def is_loaded(self) -> bool:
        return self._schema is not None

    async def get_schema(self) -> RemoteSchema:
        if self._schema is not None:
            return self._schema

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._fetch())
        return await asyncio.shield(self._inflight)

    async def _fetch(self) -> RemoteSchema:
        logger.info("Retrieving schema for Notion database %s", self.database_id)
        try:
            database = await asyncio.to_thread(self.client.retrieve_database, self.database_id)
        except Exception:
            self._inflight = None
            raise

        schema = schema_from_database(database)
        self._schema = schema
        self._inflight = None
        logger.info("Notion database exposes %d properties", len(schema))
        return schema
