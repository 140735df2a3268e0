"""Translate library change notifications into engine enqueues."""

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    ADDED_TO_COLLECTION = "added-to-collection"
    MODIFIED = "modified"


NOTIFIER_EVENTS = {
    ("add", "collection-item"): ChangeKind.ADDED_TO_COLLECTION,
    ("modify", "item"): ChangeKind.MODIFIED,
}


def parse_change_kind(event: str, object_type: str) -> Optional[ChangeKind]:
    return NOTIFIER_EVENTS.get((event, object_type))


def split_collection_item(value: str) -> Optional[tuple]:
    """``"<collectionKey>-<itemKey>"`` -> ``(collectionKey, itemKey)``"""
    collection_key, sep, item_key = str(value).partition("-")
    if not sep or not collection_key or not item_key:
        return None
    return collection_key, item_key


class ChangeNotifierAdapter:
    """
    Filter notifications down to keys the engine should sync.

    Items added to a sync-enabled collection are forwarded. Modified items are
    forwarded only when sync-on-modify is enabled; their collection membership
    is checked when the record is resolved.
    """

    def __init__(
        self,
        enqueue: Callable[[List[str]], None],
        *,
        sync_collections: Sequence[str] = (),
        sync_on_modify: bool = False,
    ):
        self.enqueue = enqueue
        self.sync_collections = set(sync_collections)
        self.sync_on_modify = sync_on_modify

    def notify(self, event: str, object_type: str, ids: Iterable[str]) -> List[str]:
        """Handle one notification; returns the keys that were enqueued."""
        kind = parse_change_kind(event, object_type)
        if kind is None:
            logger.debug("Ignoring %s/%s notification", event, object_type)
            return []
        return self.handle(kind, ids)

    def handle(self, kind: ChangeKind, ids: Iterable[str]) -> List[str]:
        if not self.sync_collections:
            logger.debug("No sync-enabled collections configured; ignoring %s", kind.value)
            return []

        if kind is ChangeKind.ADDED_TO_COLLECTION:
            keys = []
            for value in ids:
                pair = split_collection_item(value)
                if pair is None:
                    logger.warning("Malformed collection-item id: %r", value)
                    continue
                collection_key, item_key = pair
                if collection_key in self.sync_collections:
                    keys.append(item_key)
        elif kind is ChangeKind.MODIFIED:
            if not self.sync_on_modify:
                return []
            keys = [str(value) for value in ids if value]
        else:
            return []

        if keys:
            logger.info("Enqueueing %d items (%s)", len(keys), kind.value)
            self.enqueue(keys)
        return keys
