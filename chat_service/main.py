"""
Random Chat Service - Main Application
Pairs anonymous users into one-on-one chats and relays their messages
"""
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_service import config
from chat_service.api_endpoints import debug_stats, health, read_root
from chat_service.chat_websocket import websocket_chat_endpoint
from chat_service.models import DirectoryStats, ServiceState

config.configure_logging()
logger = logging.getLogger(__name__)


def create_app(service_state: Optional[ServiceState] = None) -> FastAPI:
    app = FastAPI(title="Random Chat Service")
    app.state.service_state = service_state or ServiceState()

    # Add CORS middleware for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Register HTTP endpoints
    app.get("/")(read_root)
    app.get("/health")(health)
    app.get("/debug/stats", response_model=DirectoryStats)(debug_stats)

    # Register WebSocket endpoint
    app.websocket(config.CHAT_WS_PATH)(websocket_chat_endpoint)

    return app


app = create_app()


def run():
    logger.info(f"Starting Random Chat Service on host {config.SERVICE_HOST}, port {config.SERVICE_PORT}")
    uvicorn.run(app, host=config.SERVICE_HOST, port=config.SERVICE_PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
