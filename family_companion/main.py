# family_companion/main.py

import logging
import time
from datetime import datetime
from typing import Dict, Any, Optional

from fastapi import FastAPI, WebSocket, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from family_companion import __version__
from family_companion.config import settings
from family_companion.errors import NotFoundError, UnknownAgentError

from family_companion.agents.local_agent import LocalResponder
from family_companion.managers.agent_manager import AgentService
from family_companion.managers.cache_manager import CacheManager
from family_companion.managers.database_manager import DatabaseManager
from family_companion.managers.llm_manager import LLMClient
from family_companion.managers.websocket_manager import ConnectionHub
from family_companion.api.websocket_handler import WebSocketHandler
from family_companion.api.endpoints import router as api_router, get_managers


def configure_logging():
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding='utf-8'))
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Family Companion Server",
    description="Grace and Alex family-care agents with a real-time WebSocket hub",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router)

# Global managers storage
managers: Dict[str, Any] = {}


class ServerState:
    def __init__(self):
        self.server_start_time = time.time()
        self.total_connections = 0


server_state = ServerState()


def get_managers_instance():
    """Get the global managers instance"""
    return managers


async def initialize_managers():
    """Initialize all managers; the order matters since later ones use earlier ones"""
    logger.info("Initializing managers...")

    # 1. Database
    from family_companion.models.database import init_db
    engine = await init_db(settings.database_url)
    await engine.dispose()
    managers['database'] = DatabaseManager(settings.database_url)
    if settings.seed_sample_data:
        if await managers['database'].seed_sample_data():
            logger.info("  Sample family created")

    # 2. Cache
    managers['cache'] = CacheManager()

    # 3. Response generators
    managers['llm'] = LLMClient(settings.openai_api_key, settings.openai_model)
    managers['local'] = LocalResponder()
    if not managers['llm'].enabled:
        logger.warning("  OPENAI_API_KEY not set - agents will use the local keyword responder")

    # 4. Agent service
    managers['agents'] = AgentService(
        managers['database'],
        managers['llm'],
        managers['local'],
        managers['cache'],
        insights_ttl=settings.insights_cache_ttl,
    )

    # 5. WebSocket hub and handler
    managers['hub'] = ConnectionHub()
    managers['websocket'] = WebSocketHandler(
        managers['hub'], managers['agents'], receive_timeout=settings.receive_timeout_seconds
    )

    logger.info("  All managers initialized successfully")


@app.get("/health")
async def health_check():
    uptime = time.time() - server_state.server_start_time
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "uptime_seconds": uptime,
        "managers": {name: name in managers for name in ("database", "cache", "llm", "agents", "hub", "websocket")},
        "active_connections": managers['hub'].connection_count() if 'hub' in managers else 0,
        "version": __version__,
        "service": "Family Companion Server"
    }


@app.get("/status")
async def server_status():
    uptime = time.time() - server_state.server_start_time

    cache_status = "unknown"
    if 'cache' in managers:
        try:
            cache_info = await managers['cache'].get_connection_status()
            cache_status = cache_info['type']
        except Exception as e:
            logger.warning(f"Cache status check failed: {e}")
            cache_status = "error"

    return {
        "status": "healthy",
        "uptime_seconds": uptime,
        "active_connections": managers['hub'].connection_count() if 'hub' in managers else 0,
        "total_connections": server_state.total_connections,
        "database": "connected" if 'database' in managers else "not_connected",
        "cache": cache_status,
        "llm": "openai" if 'llm' in managers and managers['llm'].enabled else "local",
    }


@app.get("/connections")
async def get_connections():
    if 'hub' not in managers:
        return {"total_active_connections": 0, "clients": {}}
    return managers['hub'].get_connection_stats()


@app.websocket(settings.websocket_path)
async def websocket_endpoint(websocket: WebSocket, agent: Optional[str] = None):
    """Browser clients (Grace and Alex views) connect here"""
    server_state.total_connections += 1
    await managers['websocket'].handle_connection(websocket, agent)


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.exception_handler(UnknownAgentError)
async def unknown_agent_handler(request: Request, exc: UnknownAgentError):
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    detail = getattr(exc, "detail", None) or "Endpoint not found"
    return JSONResponse(
        status_code=404,
        content={"message": detail, "path": str(request.url)}
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    logger.error(f"Internal server error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "details": str(exc)}
    )


@app.on_event("startup")
async def startup_event():
    logger.info("Family Companion Server starting up...")

    try:
        await initialize_managers()
        app.dependency_overrides[get_managers] = get_managers_instance
        logger.info("System startup complete - ready to accept connections")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Family Companion Server shutting down...")

    if 'hub' in managers:
        await managers['hub'].close_all()

    for name in ('cache', 'llm', 'database'):
        if name in managers:
            try:
                await managers[name].close()
            except Exception as e:
                logger.warning(f"Error closing {name} manager: {e}")

    managers.clear()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    logger.info("=" * 60)
    logger.info("FAMILY COMPANION SERVER")
    logger.info("=" * 60)
    logger.info(f"Starting server on {settings.server_host}:{settings.server_port}")
    logger.info(f"OpenAI API Key: {'Configured' if settings.openai_api_key else 'Missing (local responder)'}")
    logger.info(f"API Docs: http://localhost:{settings.server_port}/docs")
    logger.info(f"WebSocket: ws://localhost:{settings.server_port}{settings.websocket_path}")
    logger.info("=" * 60)

    uvicorn.run(
        "family_companion.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level="info",
        reload=False,
        access_log=True
    )
