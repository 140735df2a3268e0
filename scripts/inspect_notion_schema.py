"""Show which item fields the configured Notion database will receive.

Usage:
    python scripts/inspect_notion_schema.py [--database-id <id>] [--last-sync]

Prints every synced field with the type the database must give it, marks
fields the database lacks or types differently, and optionally the most recent
`sync_log` row for the database.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table


PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from zotion.config import SyncSettings  # noqa: E402
from zotion.core.notion_client import NotionClient  # noqa: E402
from zotion.core.property_mapper import FIELD_SPECS, title_property_name  # noqa: E402
from zotion.core.schema_cache import schema_from_database  # noqa: E402
from zotion.database.supabase_client import SupabaseClient  # noqa: E402


console = Console()


def dump_field_coverage(schema: dict) -> None:
    title_name = title_property_name(schema)
    table = Table(title="Synced fields", header_style="bold magenta")
    table.add_column("property")
    table.add_column("expected")
    table.add_column("actual")
    table.add_column("status")

    if title_name:
        table.add_row(title_name, "title", "title", "[green]synced[/green]")
    else:
        table.add_row("(title)", "title", "", "[yellow]missing[/yellow]")
    for spec in FIELD_SPECS:
        actual = schema.get(spec.name)
        if actual == spec.type:
            status = "[green]synced[/green]"
        elif actual is None:
            status = "[yellow]missing[/yellow]"
        else:
            status = "[red]wrong type[/red]"
        table.add_row(spec.name, spec.type, actual or "", status)

    console.print(table)


def dump_last_sync(database_id: str) -> None:
    row = SupabaseClient().get_last_sync(database_id)
    if not row:
        console.print(f"[yellow]No sync_log rows for database {database_id}[/yellow]")
        return

    table = Table(title="Last sync", header_style="bold green")
    table.add_column("field")
    table.add_column("value")
    for key in ('status', 'started_at', 'completed_at', 'error_message'):
        table.add_row(key, str(row.get(key) or ""))
    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="Compare the Notion database schema with the synced fields.")
    parser.add_argument("--database-id", default=None, help="Override NOTION_DATABASE_ID.")
    parser.add_argument("--last-sync", action="store_true", help="Also show the latest sync_log row.")
    args = parser.parse_args()

    settings = SyncSettings.from_env()
    database_id = args.database_id or settings.notion_database_id
    if not settings.notion_token or not database_id:
        console.print("[red]NOTION_TOKEN and a database id are required[/red]")
        sys.exit(1)

    database = NotionClient(settings.notion_token).retrieve_database(database_id)
    dump_field_coverage(schema_from_database(database))

    if args.last_sync:
        dump_last_sync(database_id)


if __name__ == "__main__":
    main()
