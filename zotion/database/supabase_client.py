import os
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging
from supabase import create_client, Client
from dotenv import load_dotenv

from ..config import PAGE_LINKS_TABLE, SYNC_LOG_TABLE

load_dotenv()

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseClient:
    """Supabase client for page links and sync bookkeeping"""

    def __init__(self, client: Optional[Client] = None):
        """Initialize Supabase client"""
        if client is not None:
            self.client = client
            return

        self.url = os.getenv("SUPABASE_URL")
        self.key = os.getenv("SUPABASE_SERVICE_KEY")  # Use service key for admin operations

        if not self.url or not self.key:
            raise ValueError("Supabase URL and key must be set in environment variables")

        self.client = create_client(self.url, self.key)
        logger.info("Supabase client initialized")

    def get_page_link(self, item_key: str) -> Optional[Dict[str, Any]]:
        """Return the stored Notion page for a Zotero item, if any"""
        result = self.client.table(PAGE_LINKS_TABLE)\
            .select('item_key, page_id, page_url, synced_at')\
            .eq('item_key', item_key)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def save_page_link(self, item_key: str, page_id: str, page_url: Optional[str]) -> Dict[str, Any]:
        """Upsert the item -> page mapping written after each successful sync"""
        payload = {
            'item_key': item_key,
            'page_id': page_id,
            'page_url': page_url,
            'synced_at': _now_iso(),
        }
        result = self.client.table(PAGE_LINKS_TABLE).upsert(
            payload,
            on_conflict='item_key'
        ).execute()
        return result.data[0] if result.data else payload

    def log_sync_operation(
        self,
        sync_type: str,
        database_id: str,
        metadata: Optional[Dict] = None
    ) -> Optional[str]:
        """Create a sync log entry"""
        try:
            payload = {
                'sync_type': sync_type,
                'database_id': database_id,
                'started_at': _now_iso(),
                'status': 'running',
            }
            if metadata:
                payload['metadata'] = metadata
            result = self.client.table(SYNC_LOG_TABLE).insert(payload).execute()
            return result.data[0]['id']
        except Exception as e:
            logger.error(f"Failed to create sync log: {e}")
            return None

    def update_sync_log(
        self,
        log_id: Optional[str],
        status: str,
        stats: Optional[Dict] = None,
        error: Optional[str] = None
    ):
        """Update sync log with results"""
        if not log_id:
            return
        try:
            update_data: Dict[str, Any] = {
                'status': status,
                'completed_at': _now_iso()
            }
            if stats:
                update_data['metadata'] = stats
            if error:
                update_data['error_message'] = error[:2000]
            self.client.table(SYNC_LOG_TABLE)\
                .update(update_data)\
                .eq('id', log_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to update sync log: {e}")

    def get_last_sync(self, database_id: str) -> Optional[Dict[str, Any]]:
        """Most recent sync log row for a database"""
        try:
            result = self.client.table(SYNC_LOG_TABLE)\
                .select('status, started_at, completed_at, error_message')\
                .eq('database_id', database_id)\
                .order('started_at', desc=True)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Failed to get last sync: {e}")
            return None
