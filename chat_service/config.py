"""
Environment-driven settings and logging setup for the chat service
"""
import logging
import os

SERVICE_HOST = os.environ.get("HOST", "0.0.0.0")
SERVICE_PORT = int(os.environ.get("PORT", "3001"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
CHAT_WS_PATH = os.environ.get("CHAT_WS_PATH", "/ws/chat")
CORS_ALLOW_ORIGINS = [
    origin.strip() for origin in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",") if origin.strip()
]

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(module)s - %(funcName)s - %(lineno)d - %(message)s"


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()]  # stdout/stderr for container logs
    )
