"""
Schema-aware projection of Zotero items onto Notion database properties.

Each FieldSpec names a property, the Notion type it must have, and a producer
that reads the value from an ItemRecord. Only specs whose name and type both
match the live database schema contribute to the payload.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..config import TEXT_CONTENT_MAX_LENGTH
from .item_record import ItemRecord
from .schema_cache import RemoteSchema, RemoteSchemaCache

logger = logging.getLogger(__name__)

Producer = Callable[[ItemRecord], Union[Any, Awaitable[Any]]]
Payload = Dict[str, Any]

TITLE_TYPE = "title"


def truncate_text(text: Optional[str]) -> str:
    """Cut text to the rich text content limit, counted in UTF-16 code units."""
    text = text or ""
    encoded = text.encode("utf-16-le")
    limit = TEXT_CONTENT_MAX_LENGTH * 2
    if len(encoded) <= limit:
        return text

    cut = encoded[:limit]
    # Never end on the high half of a surrogate pair
    if 0xD800 <= int.from_bytes(cut[-2:], "little") <= 0xDBFF:
        cut = cut[:-2]
    return cut.decode("utf-16-le")


def join_lines(values: List[str]) -> str:
    return truncate_text("\n".join(values))


def sanitize_select_option(text: str) -> str:
    """Select option names may not contain commas."""
    return text.replace(",", ";")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str
    producer: Producer

    def matches(self, schema: RemoteSchema) -> bool:
        return schema.get(self.name) == self.type


async def _page_title(record: ItemRecord) -> str:
    return truncate_text(
        await record.get_in_text_citation()
        or await record.get_full_citation()
        or record.get_title()
    )


async def _full_citation(record: ItemRecord) -> str:
    return truncate_text(await record.get_full_citation() or record.get_title())


async def _in_text_citation(record: ItemRecord) -> str:
    return truncate_text(await record.get_in_text_citation() or record.get_title())


async def _file_path(record: ItemRecord) -> str:
    return truncate_text(await record.get_file_path())


def _item_type(record: ItemRecord) -> Optional[str]:
    return record.get_item_type() or None


FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec("Abstract", "rich_text", lambda r: truncate_text(r.get_abstract())),
    FieldSpec("Authors", "rich_text", lambda r: join_lines(r.get_authors())),
    FieldSpec("DOI", "url", lambda r: r.get_doi()),
    FieldSpec("Editors", "rich_text", lambda r: join_lines(r.get_editors())),
    FieldSpec("File Path", "rich_text", _file_path),
    FieldSpec("Full Citation", "rich_text", _full_citation),
    FieldSpec("In-Text Citation", "rich_text", _in_text_citation),
    FieldSpec("Item Type", "select", _item_type),
    FieldSpec("Tags", "multi_select", lambda r: [sanitize_select_option(t) for t in r.get_tags()]),
    FieldSpec("Title", "rich_text", lambda r: truncate_text(r.get_title())),
    FieldSpec("URL", "url", lambda r: r.get_url()),
    FieldSpec("Year", "number", lambda r: r.get_year()),
    FieldSpec("Zotero URI", "url", lambda r: r.get_zotero_uri()),
)


def title_property_name(schema: RemoteSchema) -> Optional[str]:
    """Name of the database's title property, whatever the user called it."""
    for name, prop_type in schema.items():
        if prop_type == TITLE_TYPE:
            return name
    return None


def rich_text(content: str) -> List[Dict[str, Any]]:
    if not content:
        return []
    return [{"text": {"content": truncate_text(content)}}]


def encode_property(prop_type: str, value: Any) -> Dict[str, Any]:
    """Wrap a typed value in the Notion property request shape."""
    if prop_type in ("title", "rich_text"):
        body: Any = rich_text(value)
    elif prop_type == "select":
        body = {"name": value} if value else None
    elif prop_type == "multi_select":
        body = [{"name": name} for name in (value or [])]
    elif prop_type in ("url", "number"):
        body = value if value not in ("", None) else None
    else:
        raise ValueError(f"Unsupported property type: {prop_type}")
    return {"type": prop_type, prop_type: body}


def encode_properties(payload: Payload, schema: RemoteSchema) -> Dict[str, Any]:
    return {name: encode_property(schema[name], value) for name, value in payload.items()}


class PropertyMapper:
    """Build per-item property payloads filtered against the live schema."""

    def __init__(self, schema_cache: RemoteSchemaCache, field_specs: Tuple[FieldSpec, ...] = FIELD_SPECS):
        names = [spec.name for spec in field_specs]
        if len(names) != len(set(names)):
            raise ValueError("Field specs must have unique names")
        self.schema_cache = schema_cache
        self.field_specs = field_specs

    def specs_for(self, schema: RemoteSchema) -> List[FieldSpec]:
        specs: List[FieldSpec] = []
        title_name = title_property_name(schema)
        if title_name is not None:
            specs.append(FieldSpec(title_name, TITLE_TYPE, _page_title))
        specs.extend(spec for spec in self.field_specs if spec.matches(schema))
        return specs

    async def build_payload(self, record: ItemRecord) -> Payload:
        schema = await self.schema_cache.get_schema()
        payload: Payload = {}
        for spec in self.specs_for(schema):
            value = spec.producer(record)
            if inspect.isawaitable(value):
                value = await value
            payload[spec.name] = value
        logger.debug("Built %d properties for %s", len(payload), record.key)
        return payload

    async def build_properties(self, record: ItemRecord) -> Dict[str, Any]:
        """Payload encoded as Notion page properties."""
        payload = await self.build_payload(record)
        schema = await self.schema_cache.get_schema()
        return encode_properties(payload, schema)
