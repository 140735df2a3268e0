"""
Zotero Web API client for reading library items and writing sync markers back.
"""

import html
import json
import logging
import re
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    MAX_RETRIES,
    REQUEST_TIMEOUT,
    ZOTERO_API_URL,
    ZOTERO_API_VERSION,
    ZOTERO_DEFAULT_CITATION_STYLE,
    ZoteroSettings,
)
from .models import LibraryItem

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]+>")


class ZoteroAPIError(RuntimeError):
    """Error response returned by the Zotero Web API."""

    def __init__(self, status: int, message: str):
        super().__init__(f"Zotero API error {status}: {message}")
        self.status = status


def strip_html(markup: Optional[str]) -> str:
    """Reduce a rendered citation/bibliography entry to plain text."""
    if not markup:
        return ""
    text = TAG_PATTERN.sub("", markup)
    return re.sub(r"\s+", " ", html.unescape(text)).strip()


class ZoteroClient:
    """Client for the Zotero Web API (v3)."""

    def __init__(self, settings: Optional[ZoteroSettings] = None, session: Optional[requests.Session] = None):
        """
        Initialize Zotero client.

        Args:
            settings: Zotero settings. If not provided, read from environment.
            session: Optional pre-built session.
        """
        self.settings = settings or ZoteroSettings.from_env()
        if not self.settings.api_key or not self.settings.library_id:
            raise ValueError(
                "Zotero API key and library ID are required. "
                "Set ZOTERO_API_KEY and ZOTERO_LIBRARY_ID in environment."
            )

        prefix = "groups" if self.settings.library_type == "group" else "users"
        self.library_prefix = f"{prefix}/{self.settings.library_id}"
        self.api_url = f"{ZOTERO_API_URL}/{self.library_prefix}"
        self.headers = {
            "Zotero-API-Key": self.settings.api_key,
            "Zotero-API-Version": ZOTERO_API_VERSION,
        }

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=MAX_RETRIES,
                backoff_factor=1,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"],
                respect_retry_after_header=True,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = f"{self.api_url}/{path.lstrip('/')}"
        merged = dict(self.headers)
        if headers:
            merged.update(headers)
        if body is not None:
            merged["Content-Type"] = "application/json"

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=json.dumps(body) if body is not None else None,
                headers=merged,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Zotero request failed: {e}")
            raise

        if response.status_code >= 400:
            raise ZoteroAPIError(response.status_code, response.text)
        return response

    def item_uri(self, key: str) -> str:
        """Stable Zotero URI for an item (not the web library URL)."""
        return f"http://zotero.org/{self.library_prefix}/items/{key}"

    def get_item(self, key: str) -> Optional[LibraryItem]:
        """
        Fetch a single item.

        Returns:
            The item, or None if the key does not exist in the library
        """
        try:
            response = self._request("GET", f"items/{key}", params={"format": "json"})
        except ZoteroAPIError as e:
            if e.status == 404:
                logger.info("Zotero item %s not found", key)
                return None
            raise
        return LibraryItem.model_validate(response.json())

    def get_rendered_item(self, key: str, style: str = ZOTERO_DEFAULT_CITATION_STYLE) -> Dict[str, str]:
        """
        Render the in-text citation and bibliography entry for an item.

        Returns:
            Dict with plain-text ``citation`` and ``bib`` entries (empty when unavailable)
        """
        response = self._request(
            "GET",
            f"items/{key}",
            params={"format": "json", "include": "citation,bib", "style": style},
        )
        payload = response.json()
        return {
            "citation": strip_html(payload.get("citation")),
            "bib": strip_html(payload.get("bib")),
        }

    def get_children(self, key: str) -> List[LibraryItem]:
        """Fetch child attachments and notes of an item."""
        response = self._request("GET", f"items/{key}/children", params={"format": "json"})
        return [LibraryItem.model_validate(row) for row in response.json()]

    def add_tag(self, item: LibraryItem, tag: str) -> bool:
        """
        Add a tag to an item unless it is already present.

        Returns:
            True if the item was modified
        """
        existing = [t.model_dump() for t in item.data.tags]
        if any(t["tag"] == tag for t in existing):
            return False
        self._request(
            "PATCH",
            f"items/{item.key}",
            body={"tags": existing + [{"tag": tag}]},
            headers={"If-Unmodified-Since-Version": str(item.data.version or item.version)},
        )
        logger.debug("Tagged Zotero item %s with %r", item.key, tag)
        return True

    def create_link_attachment(self, parent_key: str, title: str, url: str) -> Dict[str, Any]:
        """Create a linked-URL attachment under the given parent item."""
        body = [
            {
                "itemType": "attachment",
                "parentItem": parent_key,
                "linkMode": "linked_url",
                "title": title,
                "url": url,
                "accessDate": "",
                "note": "",
                "tags": [],
                "contentType": "",
                "charset": "",
            }
        ]
        response = self._request("POST", "items", body=body)
        result = response.json()
        failed = result.get("failed") or {}
        if failed:
            raise ZoteroAPIError(400, json.dumps(failed))
        return result

    def update_link_attachment(self, attachment: LibraryItem, url: str) -> None:
        """Point an existing linked-URL attachment at a new URL."""
        self._request(
            "PATCH",
            f"items/{attachment.key}",
            body={"url": url},
            headers={"If-Unmodified-Since-Version": str(attachment.data.version or attachment.version)},
        )

    def test_connection(self) -> bool:
        try:
            self._request("GET", "items/top", params={"limit": 1, "format": "keys"})
            return True
        except Exception as e:
            logger.error(f"Zotero connection test failed: {e}")
            return False
