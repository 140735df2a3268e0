from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
import hmac
import hashlib
import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config import WEBHOOK_SECRET, WEBHOOK_DUPLICATE_TTL_SECONDS

router = APIRouter(tags=["webhooks"])

logger = logging.getLogger(__name__)

processing_metrics: Dict[str, Any] = {
    'total_webhooks': 0,
    'accepted_webhooks': 0,
    'failed_webhooks': 0,
    'duplicate_webhooks': 0,
    'ignored_webhooks': 0,
    'last_reset': datetime.now()
}

# Webhook event cache for deduplication
recent_events: Dict[str, datetime] = {}
EVENT_CACHE_TTL = WEBHOOK_DUPLICATE_TTL_SECONDS


def verify_webhook_signature(payload: bytes, signature: str, secret: Optional[str]) -> bool:
    """HMAC verification of the raw request body"""
    if not secret:
        logger.warning("No webhook secret configured - skipping verification")
        return True  # Development mode

    try:
        expected = hmac.new(
            secret.encode('utf-8'),
            payload,
            hashlib.sha256
        ).hexdigest()

        # Constant-time comparison
        return hmac.compare_digest(f"sha256={expected}", signature)
    except Exception as e:
        logger.error(f"Signature verification failed: {e}")
        return False


def is_duplicate_event(event_id: Optional[str]) -> bool:
    """Check if this notification was already accepted recently"""
    if not event_id:
        return False

    now = datetime.now()
    expired_keys = [
        key for key, timestamp in recent_events.items()
        if (now - timestamp).total_seconds() > EVENT_CACHE_TTL
    ]
    for key in expired_keys:
        del recent_events[key]

    if event_id in recent_events:
        logger.info(f"Duplicate event detected: {event_id}")
        processing_metrics['duplicate_webhooks'] += 1
        return True
    return False


def remember_event(event_id: Optional[str]) -> None:
    """Mark a notification as handled once the engine has taken it"""
    if event_id:
        recent_events[event_id] = datetime.now()


def _parse_ids(raw: Any) -> List[str]:
    if isinstance(raw, (str, int)):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [str(value) for value in raw if value not in (None, "")]


@router.post("/webhooks/zotero")
async def handle_zotero_webhook(request: Request):
    """Accept a library change notification and hand it to the sync engine"""

    start_time = time.time()
    processing_metrics['total_webhooks'] += 1

    body = await request.body()
    logger.debug("Raw webhook payload: %s", body.decode("utf-8", errors="ignore"))

    try:
        data = json.loads(body) if body else {}
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON payload: %s", exc)
        processing_metrics['failed_webhooks'] += 1
        raise HTTPException(status_code=400, detail="Invalid JSON")

    secret = getattr(request.app.state, "webhook_secret", WEBHOOK_SECRET)
    signature = request.headers.get('Authorization', '').replace('Bearer ', '')
    if not verify_webhook_signature(body, signature, secret):
        processing_metrics['failed_webhooks'] += 1
        raise HTTPException(status_code=401, detail="Invalid signature")

    if not isinstance(data, dict):
        processing_metrics['failed_webhooks'] += 1
        raise HTTPException(status_code=400, detail="Expected a JSON object")

    event = data.get('event')
    object_type = data.get('type')
    ids = _parse_ids(data.get('ids'))
    event_id_raw = data.get('id')
    event_id = str(event_id_raw) if event_id_raw is not None else None

    logger.info("Webhook event=%s type=%s ids=%d event_id=%s", event, object_type, len(ids), event_id)

    if not all([event, object_type, ids]):
        logger.warning("Missing required fields in webhook: %s", data)
        processing_metrics['failed_webhooks'] += 1
        raise HTTPException(status_code=400, detail="Missing required fields")

    if is_duplicate_event(event_id):
        return JSONResponse({"status": "duplicate", "ignored": True}, status_code=200)

    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        processing_metrics['failed_webhooks'] += 1
        raise HTTPException(status_code=503, detail="Sync engine not ready")

    enqueued = engine.notifier.notify(event, object_type, ids)
    remember_event(event_id)
    if not enqueued:
        processing_metrics['ignored_webhooks'] += 1
        return JSONResponse({"status": "ignored", "enqueued": []}, status_code=202)

    processing_metrics['accepted_webhooks'] += 1
    return JSONResponse({
        "status": "accepted",
        "event_id": event_id,
        "enqueued": enqueued,
        "processing_time_ms": round((time.time() - start_time) * 1000, 2)
    }, status_code=202)


@router.get("/webhooks/metrics")
async def webhook_metrics() -> Dict[str, Any]:
    return {
        **processing_metrics,
        'last_reset': processing_metrics['last_reset'].isoformat(),
        'cached_events': len(recent_events),
    }
