"""Sync services: debounce queue, coordinator, upsert and result persistence."""

from .debounce_queue import DebounceQueue  # noqa: F401
from .notifier import ChangeKind, ChangeNotifierAdapter  # noqa: F401
from .sync_coordinator import BatchReport, SyncCoordinator  # noqa: F401
from .upsert_service import NotionUpsertService  # noqa: F401

__all__ = [
    "DebounceQueue",
    "ChangeKind",
    "ChangeNotifierAdapter",
    "BatchReport",
    "SyncCoordinator",
    "NotionUpsertService",
]
