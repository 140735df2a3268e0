"""
Configuration module for Zotion.
Contains API settings, sync defaults and the settings object consumed by the engine.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Notion API Configuration
NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
NOTION_URL_PROTOCOL = "notion:"

# Zotero Web API Configuration
ZOTERO_API_URL = "https://api.zotero.org"
ZOTERO_API_VERSION = "3"
ZOTERO_DEFAULT_CITATION_STYLE = "apa"

# Request handling
MAX_RETRIES = 5  # Transport-level retries for 429/5xx
REQUEST_TIMEOUT = 60  # Seconds

# Sync Configuration
SYNC_DEBOUNCE_SECONDS = 2.0  # Quiet window before a batch is handed off
TEXT_CONTENT_MAX_LENGTH = 2000  # Notion rich text content limit
NOTION_TAG = "notion"
NOTION_LINK_TITLE = "Notion"

# Webhook Configuration
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET")
WEBHOOK_PORT = int(os.getenv("WEBHOOK_PORT", "8000"))
WEBHOOK_DUPLICATE_TTL_SECONDS = int(os.getenv("WEBHOOK_DUPLICATE_TTL_SECONDS", "300"))

# Supabase tables
PAGE_LINKS_TABLE = "notion_page_links"
SYNC_LOG_TABLE = "sync_log"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PROJECT_ROOT = Path(__file__).parent.parent


class ConfigurationMissing(ValueError):
    """Raised when a required setting is absent at engine construction."""

    def __init__(self, setting: str):
        super().__init__(f"Missing {setting}. Set {setting} in environment.")
        self.setting = setting


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class SyncSettings:
    """Everything the sync engine consumes, resolved once at startup."""

    notion_token: Optional[str] = None
    notion_database_id: Optional[str] = None
    sync_on_modify: bool = False
    debounce_seconds: float = SYNC_DEBOUNCE_SECONDS
    requeue_on_abort: bool = False
    tag_items: bool = True
    link_attachment: bool = True
    sync_collections: Tuple[str, ...] = field(default_factory=tuple)
    citation_style: str = ZOTERO_DEFAULT_CITATION_STYLE

    @classmethod
    def from_env(cls) -> "SyncSettings":
        return cls(
            notion_token=os.getenv("NOTION_TOKEN"),
            notion_database_id=os.getenv("NOTION_DATABASE_ID"),
            sync_on_modify=_env_flag("NOTION_SYNC_ON_MODIFY"),
            debounce_seconds=float(
                os.getenv("NOTION_SYNC_DEBOUNCE_SECONDS", str(SYNC_DEBOUNCE_SECONDS))
            ),
            requeue_on_abort=_env_flag("NOTION_REQUEUE_ON_ABORT"),
            tag_items=_env_flag("NOTION_TAG_ITEMS", default=True),
            link_attachment=_env_flag("NOTION_LINK_ATTACHMENT", default=True),
            sync_collections=_env_list("ZOTERO_SYNC_COLLECTIONS"),
            citation_style=os.getenv("ZOTERO_CITATION_STYLE", ZOTERO_DEFAULT_CITATION_STYLE),
        )

    def validate(self) -> None:
        """Fail fast when the credential or target database is absent."""
        if not self.notion_token:
            raise ConfigurationMissing("NOTION_TOKEN")
        if not self.notion_database_id:
            raise ConfigurationMissing("NOTION_DATABASE_ID")


@dataclass(frozen=True)
class ZoteroSettings:
    """Zotero Web API access and local file resolution."""

    api_key: Optional[str] = None
    library_id: Optional[str] = None
    library_type: str = "user"
    data_dir: Optional[str] = None
    base_attachment_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ZoteroSettings":
        return cls(
            api_key=os.getenv("ZOTERO_API_KEY"),
            library_id=os.getenv("ZOTERO_LIBRARY_ID"),
            library_type=os.getenv("ZOTERO_LIBRARY_TYPE", "user"),
            data_dir=os.getenv("ZOTERO_DATA_DIR"),
            base_attachment_path=os.getenv("ZOTERO_BASE_ATTACHMENT_PATH"),
        )
