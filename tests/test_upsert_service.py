from pathlib import Path
import asyncio
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zotion.core.models import RemoteRecordRef
from zotion.core.notion_client import NotionAPIError, NotionObjectNotFound
from zotion.services.upsert_service import NotionUpsertService

PROPERTIES = {"Title": {"type": "rich_text", "rich_text": []}}


class StubNotion:
    """Records page calls; update behaviour is configurable."""

    def __init__(self, update_error=None):
        self.update_error = update_error
        self.updates = []
        self.creates = []

    def update_page(self, page_id, properties):
        self.updates.append(page_id)
        if self.update_error:
            raise self.update_error
        return {"id": page_id, "url": f"https://www.notion.so/{page_id}"}

    def create_page(self, database_id, properties):
        self.creates.append(database_id)
        return {"id": "R2", "url": "https://www.notion.so/R2"}


def test_missing_ref_creates_page():
    client = StubNotion()
    service = NotionUpsertService(client, "db")

    outcome = asyncio.run(service.upsert(RemoteRecordRef(), PROPERTIES))

    assert outcome.page_id == "R2"
    assert outcome.created is True
    assert client.updates == []
    assert client.creates == ["db"]


def test_existing_ref_updates_page():
    client = StubNotion()
    service = NotionUpsertService(client, "db")

    outcome = asyncio.run(service.upsert(RemoteRecordRef(page_id="R1"), PROPERTIES))

    assert outcome.page_id == "R1"
    assert outcome.created is False
    assert client.creates == []


def test_not_found_update_falls_back_to_single_create():
    client = StubNotion(update_error=NotionObjectNotFound(404, "object_not_found", "gone"))
    service = NotionUpsertService(client, "db")

    outcome = asyncio.run(service.upsert(RemoteRecordRef(page_id="R1"), PROPERTIES))

    assert outcome.page_id == "R2"
    assert outcome.url == "https://www.notion.so/R2"
    assert client.updates == ["R1"]
    assert client.creates == ["db"]


def test_other_update_errors_propagate():
    client = StubNotion(update_error=NotionAPIError(502, "bad_gateway", "upstream"))
    service = NotionUpsertService(client, "db")

    with pytest.raises(NotionAPIError) as exc_info:
        asyncio.run(service.upsert(RemoteRecordRef(page_id="R1"), PROPERTIES))

    assert not isinstance(exc_info.value, NotionObjectNotFound)
    assert client.creates == []
