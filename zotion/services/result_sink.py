import asyncio
import logging
from typing import List, Optional

from ..config import NOTION_LINK_TITLE, NOTION_TAG
from ..core.item_record import ItemRecord, LibraryAccessor
from ..core.models import UpsertOutcome
from ..core.notion_client import convert_web_url_to_local
from ..core.zotero_client import ZoteroClient
from ..database.supabase_client import SupabaseClient
from .sync_coordinator import BatchReport, describe_error

logger = logging.getLogger(__name__)


class LibraryResultSink:
    """Persist sync results: page link in Supabase, marker tag and link attachment in Zotero."""

    def __init__(
        self,
        link_store: SupabaseClient,
        zotero: ZoteroClient,
        accessor: LibraryAccessor,
        database_id: str,
        *,
        tag_items: bool = True,
        link_attachment: bool = True,
    ):
        self.link_store = link_store
        self.zotero = zotero
        self.accessor = accessor
        self.database_id = database_id
        self.tag_items = tag_items
        self.link_attachment = link_attachment
        self.last_failure: Optional[str] = None

    async def record_synced(self, record: ItemRecord, outcome: UpsertOutcome) -> None:
        await asyncio.to_thread(self.link_store.save_page_link, record.key, outcome.page_id, outcome.url)

        if self.tag_items:
            await asyncio.to_thread(self.zotero.add_tag, record.item, NOTION_TAG)

        if self.link_attachment and outcome.url:
            await self._save_link_attachment(record.key, convert_web_url_to_local(outcome.url))

    async def _save_link_attachment(self, key: str, url: str) -> None:
        existing = await self.accessor.find_notion_link(key)
        if existing is None:
            await asyncio.to_thread(self.zotero.create_link_attachment, key, NOTION_LINK_TITLE, url)
        elif existing.data.url != url:
            await asyncio.to_thread(self.zotero.update_link_attachment, existing, url)

    async def record_failure(self, key: str, error: BaseException, unattempted: List[str]) -> None:
        self.last_failure = f"Failed to sync {key}: {describe_error(error)}"
        logger.error(self.last_failure)

    async def record_batch(self, report: BatchReport) -> None:
        if not report.aborted:
            self.last_failure = None

        def _write() -> None:
            log_id = self.link_store.log_sync_operation(
                "webhook", self.database_id, {"items": report.item_keys}
            )
            self.link_store.update_sync_log(
                log_id,
                "failed" if report.aborted else "completed",
                stats=report.to_dict(),
                error=report.error,
            )

        await asyncio.to_thread(_write)
