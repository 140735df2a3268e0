"""
Notion API client for database introspection and page upserts.
"""

import logging
import re
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    MAX_RETRIES,
    NOTION_API_URL,
    NOTION_URL_PROTOCOL,
    NOTION_VERSION,
    REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)

PAGE_URL_REGEX = re.compile(rf"^{NOTION_URL_PROTOCOL}.+([0-9a-f]{{32}})$")


class NotionAPIError(Exception):
    """Error response returned by the Notion API."""

    def __init__(self, status: int, code: Optional[str], message: str):
        super().__init__(f"Notion API error {status} ({code}): {message}")
        self.status = status
        self.code = code
        self.message = message


class NotionObjectNotFound(NotionAPIError):
    """The requested page or database does not exist or is not shared."""


def convert_web_url_to_local(url: str) -> str:
    """Rewrite an https page URL to the notion: protocol used by the desktop app."""
    return re.sub(r"^https:", NOTION_URL_PROTOCOL, url)


def get_page_id_from_url(url: str) -> Optional[str]:
    match = PAGE_URL_REGEX.match(url or "")
    return match.group(1) if match else None


class NotionClient:
    """Client for interacting with the Notion REST API."""

    def __init__(self, token: str, api_url: str = NOTION_API_URL, session: Optional[requests.Session] = None):
        """
        Initialize Notion client.

        Args:
            token: Notion integration token.
            api_url: Base URL of the API, overridable for tests.
            session: Optional pre-built session.
        """
        if not token:
            raise ValueError("Notion token is required. Set NOTION_TOKEN in environment.")

        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Notion-Version": NOTION_VERSION,
        }

        if session is None:
            # Retry only idempotent requests; page creation must not be repeated blindly
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

    def request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a request to the Notion API and decode the JSON response.

        Args:
            method: HTTP verb
            path: Path relative to the API root, e.g. ``pages/<id>``
            payload: Optional JSON body

        Returns:
            Decoded response body

        Raises:
            NotionObjectNotFound: If the object is missing or not shared with the integration
            NotionAPIError: For any other error response
            requests.RequestException: If the request could not be sent
        """
        url = f"{self.api_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self.headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Notion request failed: {e}")
            raise

        if response.status_code >= 400:
            raise self._error_from_response(response)

        return response.json()

    @staticmethod
    def _error_from_response(response: requests.Response) -> NotionAPIError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = body.get("code")
        message = body.get("message") or response.text
        logger.warning("Notion responded %s (%s): %s", response.status_code, code, message)
        if response.status_code == 404 or code == "object_not_found":
            return NotionObjectNotFound(response.status_code, code, message)
        return NotionAPIError(response.status_code, code, message)

    def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        """Fetch a database object including its property schema."""
        return self.request("GET", f"databases/{database_id}")

    def create_page(self, database_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Create a page in the given database."""
        payload = {
            "parent": {"database_id": database_id},
            "properties": properties,
        }
        return self.request("POST", "pages", payload)

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Update the properties of an existing page."""
        return self.request("PATCH", f"pages/{page_id}", {"properties": properties})

    def test_connection(self) -> bool:
        """
        Test the API connection by retrieving the bot user.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            result = self.request("GET", "users/me")
            logger.info(f"Successfully connected as: {result.get('name') or result.get('id')}")
            return True
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False
