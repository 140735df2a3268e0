"""
Health check endpoints for system status
"""

import asyncio
from fastapi import APIRouter, Request
from typing import Dict, Any
import logging
from datetime import datetime

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/")
async def health_check(request: Request) -> Dict[str, Any]:
    """Engine state plus a Notion schema probe"""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "services": {}
    }

    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        health_status["status"] = "unhealthy"
        health_status["services"]["engine"] = {"status": "not started"}
        return health_status

    engine_status = engine.status()
    health_status["services"]["engine"] = engine_status
    if engine_status.get("last_failure"):
        health_status["status"] = "degraded"

    try:
        schema = await engine.schema_cache.get_schema()
        health_status["services"]["notion"] = {
            "status": "healthy",
            "properties": len(schema)
        }
    except Exception as e:
        health_status["services"]["notion"] = {
            "status": "unhealthy",
            "error": str(e)
        }
        health_status["status"] = "degraded"

    return health_status


@router.get("/ready")
async def readiness_check(request: Request) -> Dict[str, Any]:
    """Readiness probe: the engine has been built and its backends answer"""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        return {"status": "not ready", "services": {}}

    connections = await engine.check_connections()
    if not all(connections.values()):
        logger.warning("Readiness check failed: %s", connections)
        return {"status": "not ready", "services": connections}
    return {"status": "ready", "services": connections}


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """Liveness probe endpoint"""
    await asyncio.sleep(0)
    return {
        "status": "alive",
        "timestamp": datetime.now().isoformat()
    }
