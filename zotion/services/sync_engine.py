"""Engine facade: wires the debounce queue, coordinator and notifier adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..config import SyncSettings
from ..core.item_record import LibraryAccessor
from ..core.notion_client import NotionClient
from ..core.property_mapper import PropertyMapper
from ..core.schema_cache import RemoteSchemaCache
from ..core.zotero_client import ZoteroClient
from ..database.supabase_client import SupabaseClient
from .debounce_queue import DebounceQueue
from .notifier import ChangeNotifierAdapter
from .result_sink import LibraryResultSink
from .sync_coordinator import RecordAccessor, ResultSink, SyncCoordinator, Upserter
from .upsert_service import NotionUpsertService

logger = logging.getLogger(__name__)


class SyncEngine:
    """Change-coalescing Zotero -> Notion synchronizer for one database."""

    def __init__(
        self,
        settings: SyncSettings,
        *,
        accessor: RecordAccessor,
        schema_cache: RemoteSchemaCache,
        upserter: Upserter,
        sink: ResultSink,
        mapper: Optional[PropertyMapper] = None,
        connection_checks: Optional[Dict[str, Callable[[], bool]]] = None,
    ):
        settings.validate()
        self.connection_checks = dict(connection_checks or {})
        self.settings = settings
        self.schema_cache = schema_cache
        self.mapper = mapper or PropertyMapper(schema_cache)
        self.sink = sink
        self.coordinator = SyncCoordinator(
            accessor,
            self.mapper,
            upserter,
            sink,
            next_batch=self._next_batch,
            requeue=self.enqueue if settings.requeue_on_abort else None,
        )
        self.queue = DebounceQueue(self.coordinator, settings.debounce_seconds)
        self.notifier = ChangeNotifierAdapter(
            self.enqueue,
            sync_collections=settings.sync_collections,
            sync_on_modify=settings.sync_on_modify,
        )
        if not settings.sync_collections:
            logger.warning("ZOTERO_SYNC_COLLECTIONS is empty; change notifications will be ignored")

    @property
    def running(self) -> bool:
        return self.coordinator.running

    def enqueue(self, item_keys: Iterable[str]) -> None:
        self.queue.enqueue(item_keys)

    def _next_batch(self) -> Optional[List[str]]:
        return self.queue.take_ready()

    async def wait_idle(self) -> None:
        """Return once nothing is queued and no batch is running."""
        while True:
            await self.coordinator.wait_idle()
            if self.queue.timer_armed:
                await asyncio.sleep(self.queue.delay_seconds)
                continue
            if self.coordinator.running:
                await asyncio.sleep(0)
                continue
            return

    async def check_connections(self) -> Dict[str, bool]:
        """Run each backend connection check off the event loop."""
        results = {}
        for name, check in self.connection_checks.items():
            results[name] = await asyncio.to_thread(check)
        return results

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "pending": len(self.queue.pending_keys),
            "timer_armed": self.queue.timer_armed,
            "batches_run": self.coordinator.batches_run,
            "schema_loaded": self.schema_cache.is_loaded,
            "last_failure": getattr(self.sink, "last_failure", None),
        }


def build_engine(settings: Optional[SyncSettings] = None) -> SyncEngine:
    """
    Build the engine with live Notion, Zotero and Supabase clients.

    Raises:
        ConfigurationMissing: If the Notion token or database id is absent
    """
    settings = settings or SyncSettings.from_env()
    settings.validate()

    notion = NotionClient(settings.notion_token)
    zotero = ZoteroClient()
    link_store = SupabaseClient()
    accessor = LibraryAccessor.from_settings(settings, zotero, link_store)
    schema_cache = RemoteSchemaCache(notion, settings.notion_database_id)
    upserter = NotionUpsertService(notion, settings.notion_database_id)
    sink = LibraryResultSink(
        link_store,
        zotero,
        accessor,
        settings.notion_database_id,
        tag_items=settings.tag_items,
        link_attachment=settings.link_attachment,
    )
    return SyncEngine(
        settings,
        accessor=accessor,
        schema_cache=schema_cache,
        upserter=upserter,
        sink=sink,
        connection_checks={
            "notion": notion.test_connection,
            "zotero": zotero.test_connection,
        },
    )
