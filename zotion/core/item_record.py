"""Domain record accessor: read-only views over Zotero items used by the property mapper."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..config import NOTION_URL_PROTOCOL, SyncSettings, ZoteroSettings
from .models import LibraryItem, RemoteRecordRef
from .notion_client import get_page_id_from_url
from .zotero_client import ZoteroClient

if TYPE_CHECKING:
    from ..database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

DOI_URL_PREFIX = "https://doi.org/"
LINKED_FILE_BASE_PREFIX = "attachments:"


class ItemRecord:
    """Getters for one Zotero item; citation and file lookups are lazy and memoized."""

    def __init__(self, item: LibraryItem, accessor: "LibraryAccessor"):
        self.item = item
        self._accessor = accessor
        self._rendered: Optional[Dict[str, str]] = None
        self._file_path: Optional[str] = None
        self._file_path_loaded = False

    @property
    def key(self) -> str:
        return self.item.key

    def get_title(self) -> str:
        return self.item.data.title

    def get_abstract(self) -> str:
        return self.item.data.abstractNote

    def _creators_of_type(self, creator_type: str) -> List[str]:
        return [
            c.display_name
            for c in self.item.data.creators
            if c.creatorType == creator_type and c.display_name
        ]

    def get_authors(self) -> List[str]:
        return self._creators_of_type("author")

    def get_editors(self) -> List[str]:
        return self._creators_of_type("editor")

    def get_doi(self) -> Optional[str]:
        doi = self.item.data.DOI.strip()
        if not doi:
            return None
        if doi.lower().startswith(("http://", "https://")):
            return doi
        return f"{DOI_URL_PREFIX}{doi}"

    def get_url(self) -> Optional[str]:
        return self.item.data.url.strip() or None

    def get_year(self) -> Optional[int]:
        return self.item.year

    def get_tags(self) -> List[str]:
        return [t.tag for t in self.item.data.tags if t.tag]

    def get_item_type(self) -> str:
        return self.item.data.itemType

    def get_zotero_uri(self) -> str:
        return self._accessor.zotero.item_uri(self.key)

    async def _get_rendered(self) -> Dict[str, str]:
        if self._rendered is None:
            try:
                self._rendered = await asyncio.to_thread(
                    self._accessor.zotero.get_rendered_item,
                    self.key,
                    self._accessor.citation_style,
                )
            except Exception as exc:  # noqa: BLE001
                # Citation rendering is decorative; fall back to the raw title
                logger.warning("Could not render citation for %s: %s", self.key, exc)
                self._rendered = {"citation": "", "bib": ""}
        return self._rendered

    async def get_in_text_citation(self) -> str:
        return (await self._get_rendered()).get("citation", "")

    async def get_full_citation(self) -> str:
        return (await self._get_rendered()).get("bib", "")

    async def get_file_path(self) -> Optional[str]:
        if not self._file_path_loaded:
            self._file_path = await self._accessor.resolve_file_path(self.item)
            self._file_path_loaded = True
        return self._file_path

    async def get_remote_ref(self) -> RemoteRecordRef:
        return await self._accessor.get_remote_ref(self.item)


class LibraryAccessor:
    """
    Resolve item keys to records.

    A key resolves only for regular, non-trashed items that belong to a
    sync-enabled collection.
    """

    def __init__(
        self,
        zotero: ZoteroClient,
        link_store: Optional["SupabaseClient"] = None,
        *,
        sync_collections: Sequence[str] = (),
        citation_style: str = "apa",
        zotero_settings: Optional[ZoteroSettings] = None,
    ):
        self.zotero = zotero
        self.link_store = link_store
        self.sync_collections = set(sync_collections)
        self.citation_style = citation_style
        self.zotero_settings = zotero_settings or zotero.settings

    @classmethod
    def from_settings(
        cls,
        settings: SyncSettings,
        zotero: ZoteroClient,
        link_store: Optional["SupabaseClient"] = None,
    ) -> "LibraryAccessor":
        return cls(
            zotero,
            link_store,
            sync_collections=settings.sync_collections,
            citation_style=settings.citation_style,
        )

    async def get_record(self, key: str) -> Optional[ItemRecord]:
        item = await asyncio.to_thread(self.zotero.get_item, key)
        if item is None:
            return None
        if item.data.deleted or not item.is_regular:
            logger.debug("Skipping %s: trashed or not a regular item", key)
            return None
        if self.sync_collections and not self.sync_collections.intersection(item.data.collections):
            logger.debug("Skipping %s: not in a sync-enabled collection", key)
            return None
        return ItemRecord(item, self)

    async def get_remote_ref(self, item: LibraryItem) -> RemoteRecordRef:
        if self.link_store is not None:
            row = await asyncio.to_thread(self.link_store.get_page_link, item.key)
            if row and row.get("page_id"):
                return RemoteRecordRef(page_id=row["page_id"], url=row.get("page_url"))

        # Items linked before the link table existed carry a notion: attachment
        link = await self.find_notion_link(item.key)
        if link is not None and link.data.url:
            page_id = get_page_id_from_url(link.data.url)
            if page_id:
                return RemoteRecordRef(page_id=page_id, url=link.data.url)
        return RemoteRecordRef()

    async def find_notion_link(self, key: str) -> Optional[LibraryItem]:
        children = await asyncio.to_thread(self.zotero.get_children, key)
        for child in children:
            if child.data.linkMode == "linked_url" and child.data.url.startswith(NOTION_URL_PROTOCOL):
                return child
        return None

    async def resolve_file_path(self, item: LibraryItem) -> Optional[str]:
        attachment_key = item.best_attachment_key
        if not attachment_key:
            return None

        attachment = await asyncio.to_thread(self.zotero.get_item, attachment_key)
        if attachment is None:
            return None
        return self.local_path_for(attachment)

    def local_path_for(self, attachment: LibraryItem) -> Optional[str]:
        data = attachment.data
        if data.linkMode in {"imported_file", "imported_url"}:
            if not self.zotero_settings.data_dir or not data.filename:
                return None
            return str(Path(self.zotero_settings.data_dir) / "storage" / attachment.key / data.filename)

        if data.linkMode == "linked_file" and data.path:
            if data.path.startswith(LINKED_FILE_BASE_PREFIX):
                base = self.zotero_settings.base_attachment_path
                if not base:
                    return None
                return os.path.join(base, data.path[len(LINKED_FILE_BASE_PREFIX):])
            return data.path
        return None
