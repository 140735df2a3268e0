from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zotion.services.notifier import (
    ChangeKind,
    ChangeNotifierAdapter,
    parse_change_kind,
    split_collection_item,
)


class EnqueueRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, keys):
        self.calls.append(list(keys))


def test_parse_change_kind():
    assert parse_change_kind("add", "collection-item") is ChangeKind.ADDED_TO_COLLECTION
    assert parse_change_kind("modify", "item") is ChangeKind.MODIFIED
    assert parse_change_kind("delete", "item") is None


def test_split_collection_item():
    assert split_collection_item("COLL1234-ITEM5678") == ("COLL1234", "ITEM5678")
    assert split_collection_item("nodash") is None


def test_added_items_filtered_by_collection():
    enqueue = EnqueueRecorder()
    adapter = ChangeNotifierAdapter(enqueue, sync_collections=["COLL1"])

    keys = adapter.notify("add", "collection-item", ["COLL1-AAA", "COLL2-BBB", "broken", "COLL1-CCC"])

    assert keys == ["AAA", "CCC"]
    assert enqueue.calls == [["AAA", "CCC"]]


def test_modified_items_require_sync_on_modify():
    enqueue = EnqueueRecorder()
    adapter = ChangeNotifierAdapter(enqueue, sync_collections=["COLL1"])

    assert adapter.notify("modify", "item", ["AAA"]) == []
    assert enqueue.calls == []

    adapter.sync_on_modify = True
    assert adapter.notify("modify", "item", ["AAA", "BBB"]) == ["AAA", "BBB"]
    assert enqueue.calls == [["AAA", "BBB"]]


def test_no_sync_collections_ignores_everything():
    enqueue = EnqueueRecorder()
    adapter = ChangeNotifierAdapter(enqueue, sync_on_modify=True)

    assert adapter.notify("add", "collection-item", ["COLL1-AAA"]) == []
    assert adapter.notify("modify", "item", ["AAA"]) == []
    assert enqueue.calls == []


def test_unknown_events_ignored():
    enqueue = EnqueueRecorder()
    adapter = ChangeNotifierAdapter(enqueue, sync_collections=["COLL1"], sync_on_modify=True)

    assert adapter.notify("trash", "item", ["AAA"]) == []
    assert enqueue.calls == []
