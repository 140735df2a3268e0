"""
Pydantic models and value types shared across the sync engine.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

YEAR_PATTERN = re.compile(r"\b(\d{4})\b")


class Creator(BaseModel):
    """A Zotero creator entry (two-field or single-field name)."""

    model_config = ConfigDict(extra="ignore")

    creatorType: str = "author"
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name.strip()
        parts = [p.strip() for p in (self.lastName, self.firstName) if p and p.strip()]
        return ", ".join(parts)


class ItemTag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag: str
    type: int = 0


class ItemData(BaseModel):
    """The editable `data` block of a Zotero item."""

    model_config = ConfigDict(extra="allow")

    key: str
    version: int = 0
    itemType: str
    title: str = ""
    abstractNote: str = ""
    creators: List[Creator] = Field(default_factory=list)
    DOI: str = ""
    url: str = ""
    date: str = ""
    tags: List[ItemTag] = Field(default_factory=list)
    collections: List[str] = Field(default_factory=list)
    deleted: bool = False
    parentItem: Optional[str] = None
    linkMode: Optional[str] = None
    filename: Optional[str] = None
    path: Optional[str] = None
    contentType: Optional[str] = None

    @field_validator("deleted", mode="before")
    @classmethod
    def parse_deleted(cls, value: Any) -> bool:
        # The API reports trashed items as 1/true
        if value in (None, "", 0, "0", False):
            return False
        return True

    @field_validator("title", "abstractNote", "DOI", "url", "date", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


class LibraryItem(BaseModel):
    """A Zotero item as returned by the Web API (format=json)."""

    model_config = ConfigDict(extra="ignore")

    key: str
    version: int = 0
    library: Dict[str, Any] = Field(default_factory=dict)
    links: Dict[str, Any] = Field(default_factory=dict)
    meta: Dict[str, Any] = Field(default_factory=dict)
    data: ItemData
    citation: Optional[str] = None
    bib: Optional[str] = None

    @property
    def is_regular(self) -> bool:
        return self.data.itemType not in {"attachment", "note", "annotation"}

    @property
    def year(self) -> Optional[int]:
        for candidate in (self.meta.get("parsedDate"), self.data.date):
            if not candidate:
                continue
            match = YEAR_PATTERN.search(str(candidate))
            if match:
                return int(match.group(1))
        return None

    @property
    def best_attachment_key(self) -> Optional[str]:
        attachment = self.links.get("attachment") or {}
        href = attachment.get("href")
        if not href:
            return None
        return href.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class RemoteRecordRef:
    """Notion page previously stored against a Zotero item."""

    page_id: Optional[str] = None
    url: Optional[str] = None

    @property
    def has_page(self) -> bool:
        return bool(self.page_id)


@dataclass(frozen=True)
class UpsertOutcome:
    """Identifier and URL of the created or updated Notion page."""

    page_id: str
    url: Optional[str]
    created: bool = False
