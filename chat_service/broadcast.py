"""
Outbound event helpers for chat WebSocket clients
"""
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

EVENT_WAITING = "waiting"
EVENT_CONNECTED = "connected"
EVENT_MESSAGE = "message"
EVENT_CHAT_ENDED = "chat_ended"


async def send_event(websocket: WebSocket, event_type: str, **payload: Any) -> bool:
    """Send one named event to a client. Returns False if the send failed."""
    message = {"type": event_type}
    message.update(payload)
    try:
        await websocket.send_text(json.dumps(message))
        return True
    except Exception as e:
        # The peer may be mid-disconnect; its own handler runs the cleanup.
        logger.warning(f"Error sending '{event_type}' event to client: {e}")
        return False
