import asyncio
import logging
from typing import Any, Dict

from ..core.models import RemoteRecordRef, UpsertOutcome
from ..core.notion_client import NotionClient, NotionObjectNotFound

logger = logging.getLogger(__name__)


class NotionUpsertService:
    """Create-or-update one Notion page per Zotero item."""

    def __init__(self, client: NotionClient, database_id: str):
        self.client = client
        self.database_id = database_id

    async def upsert(self, ref: RemoteRecordRef, properties: Dict[str, Any]) -> UpsertOutcome:
        """
        Update the stored page, or create one when there is none.

        A page that was deleted or unshared since the last sync is recreated.
        Every other error propagates to the caller.
        """
        if ref.has_page:
            try:
                response = await asyncio.to_thread(self.client.update_page, ref.page_id, properties)
                return self._outcome(response, created=False)
            except NotionObjectNotFound:
                logger.info("Notion page %s no longer exists; creating a new one", ref.page_id)

        response = await asyncio.to_thread(self.client.create_page, self.database_id, properties)
        return self._outcome(response, created=True)

    @staticmethod
    def _outcome(response: Dict[str, Any], *, created: bool) -> UpsertOutcome:
        return UpsertOutcome(page_id=response["id"], url=response.get("url"), created=created)
