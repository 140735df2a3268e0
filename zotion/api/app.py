import logging

from fastapi import FastAPI

from .routes.health import router as health_router
from ..services.sync_engine import build_engine
from ..webhooks.webhook_server import router as webhook_router

app = FastAPI(title="Zotion", description="Zotero to Notion sync webhook server")
app.include_router(webhook_router)  # exposes /webhooks/zotero
app.include_router(health_router)

logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    if getattr(app.state, "engine", None) is None:
        # Fails fast with ConfigurationMissing when Notion settings are absent
        app.state.engine = build_engine()
    logger.info("Sync engine ready")


@app.on_event("shutdown")
async def _shutdown() -> None:
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.wait_idle()
