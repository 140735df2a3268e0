from pathlib import Path
import asyncio
import sys
from types import SimpleNamespace

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zotion.core.models import LibraryItem, UpsertOutcome
from zotion.services.result_sink import LibraryResultSink
from zotion.services.sync_coordinator import BatchReport

PAGE_URL = "https://www.notion.so/Paper-0123456789abcdef0123456789abcdef"
LOCAL_URL = "notion://www.notion.so/Paper-0123456789abcdef0123456789abcdef"


class StubLinkStore:
    def __init__(self):
        self.links = []
        self.logs = []

    def save_page_link(self, item_key, page_id, page_url):
        self.links.append((item_key, page_id, page_url))

    def log_sync_operation(self, sync_type, database_id, metadata=None):
        self.logs.append({"type": sync_type, "database_id": database_id, "metadata": metadata})
        return "log-1"

    def update_sync_log(self, log_id, status, stats=None, error=None):
        self.logs[-1].update({"id": log_id, "status": status, "stats": stats, "error": error})


class StubZotero:
    def __init__(self):
        self.tagged = []
        self.created = []
        self.updated = []

    def add_tag(self, item, tag):
        self.tagged.append((item.key, tag))
        return True

    def create_link_attachment(self, parent_key, title, url):
        self.created.append((parent_key, title, url))

    def update_link_attachment(self, attachment, url):
        self.updated.append((attachment.key, url))


class StubAccessor:
    def __init__(self, existing=None):
        self.existing = existing

    async def find_notion_link(self, key):
        return self.existing


def make_attachment(url):
    return LibraryItem.model_validate(
        {
            "key": "LINK0001",
            "data": {"key": "LINK0001", "itemType": "attachment", "linkMode": "linked_url", "url": url},
        }
    )


def make_sink(existing=None, **kwargs):
    store, zotero = StubLinkStore(), StubZotero()
    sink = LibraryResultSink(store, zotero, StubAccessor(existing), "db", **kwargs)
    return sink, store, zotero


RECORD = SimpleNamespace(key="ITEM0001", item=SimpleNamespace(key="ITEM0001"))


def test_record_synced_links_tags_and_attaches():
    sink, store, zotero = make_sink()

    asyncio.run(sink.record_synced(RECORD, UpsertOutcome("page-1", PAGE_URL, created=True)))

    assert store.links == [("ITEM0001", "page-1", PAGE_URL)]
    assert zotero.tagged == [("ITEM0001", "notion")]
    assert zotero.created == [("ITEM0001", "Notion", LOCAL_URL)]


def test_existing_link_attachment_is_updated_when_url_changes():
    sink, _, zotero = make_sink(existing=make_attachment("notion://www.notion.so/old"))

    asyncio.run(sink.record_synced(RECORD, UpsertOutcome("page-1", PAGE_URL)))

    assert zotero.created == []
    assert zotero.updated == [("LINK0001", LOCAL_URL)]


def test_write_back_can_be_disabled():
    sink, store, zotero = make_sink(tag_items=False, link_attachment=False)

    asyncio.run(sink.record_synced(RECORD, UpsertOutcome("page-1", PAGE_URL)))

    assert store.links == [("ITEM0001", "page-1", PAGE_URL)]
    assert zotero.tagged == []
    assert zotero.created == []


def test_failure_and_batch_report_are_logged():
    sink, store, _ = make_sink()
    report = BatchReport(
        item_keys=["a", "b", "c"],
        synced=["a"],
        failed_key="b",
        error="connection reset",
        unattempted=["c"],
    )

    async def scenario():
        await sink.record_failure("b", ConnectionError("connection reset"), ["c"])
        await sink.record_batch(report)

    asyncio.run(scenario())

    assert sink.last_failure == "Failed to sync b: connection reset"
    log = store.logs[0]
    assert log["status"] == "failed"
    assert log["error"] == "connection reset"
    assert log["stats"]["unattempted"] == ["c"]


def test_clean_batch_clears_last_failure():
    sink, _, _ = make_sink()

    async def scenario():
        await sink.record_failure("b", RuntimeError("boom"), [])
        await sink.record_batch(BatchReport(item_keys=["b"], failed_key="b", error="boom"))
        failed = sink.last_failure
        await sink.record_batch(BatchReport(item_keys=["b"], synced=["b"]))
        return failed

    failed = asyncio.run(scenario())

    assert failed == "Failed to sync b: boom"
    assert sink.last_failure is None
