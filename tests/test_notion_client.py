from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zotion.core.notion_client import (
    NotionAPIError,
    NotionClient,
    NotionObjectNotFound,
    convert_web_url_to_local,
    get_page_id_from_url,
)

PAGE_ID = "0123456789abcdef0123456789abcdef"


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    """Replays queued responses and records outgoing requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.requests.append({"method": method, "url": url, "json": json, "headers": headers})
        return self.responses.pop(0)


def make_client(*responses):
    session = FakeSession(*responses)
    return NotionClient("secret_token", session=session), session


def test_requires_token():
    with pytest.raises(ValueError):
        NotionClient("")


def test_create_page_posts_parent_and_properties():
    client, session = make_client(FakeResponse(200, {"id": PAGE_ID, "url": "https://www.notion.so/x"}))

    result = client.create_page("db", {"Title": {"type": "rich_text", "rich_text": []}})

    sent = session.requests[0]
    assert result["id"] == PAGE_ID
    assert sent["method"] == "POST"
    assert sent["url"].endswith("/v1/pages")
    assert sent["json"]["parent"] == {"database_id": "db"}
    assert sent["headers"]["Notion-Version"] == "2022-06-28"
    assert sent["headers"]["Authorization"] == "Bearer secret_token"


def test_update_page_patches_properties():
    client, session = make_client(FakeResponse(200, {"id": PAGE_ID}))

    client.update_page(PAGE_ID, {"Year": {"type": "number", "number": 2020}})

    sent = session.requests[0]
    assert sent["method"] == "PATCH"
    assert sent["url"].endswith(f"/pages/{PAGE_ID}")
    assert sent["json"] == {"properties": {"Year": {"type": "number", "number": 2020}}}


def test_404_maps_to_object_not_found():
    client, _ = make_client(
        FakeResponse(404, {"object": "error", "code": "object_not_found", "message": "Could not find page"})
    )

    with pytest.raises(NotionObjectNotFound) as exc_info:
        client.update_page(PAGE_ID, {})

    assert exc_info.value.status == 404
    assert exc_info.value.code == "object_not_found"


def test_other_errors_are_not_object_not_found():
    client, _ = make_client(FakeResponse(502, None, text="Bad Gateway"))

    with pytest.raises(NotionAPIError) as exc_info:
        client.retrieve_database("db")

    assert not isinstance(exc_info.value, NotionObjectNotFound)
    assert exc_info.value.message == "Bad Gateway"


def test_page_url_helpers():
    web_url = f"https://www.notion.so/My-Paper-{PAGE_ID}"
    local_url = convert_web_url_to_local(web_url)

    assert local_url == f"notion://www.notion.so/My-Paper-{PAGE_ID}"
    assert get_page_id_from_url(local_url) == PAGE_ID
    assert get_page_id_from_url(web_url) is None


def test_connection_check():
    client, session = make_client(FakeResponse(200, {"object": "user", "name": "Zotion"}))
    assert client.test_connection() is True
    assert session.requests[0]["url"].endswith("/users/me")

    failing, _ = make_client(FakeResponse(401, {"code": "unauthorized", "message": "API token is invalid."}))
    assert failing.test_connection() is False
