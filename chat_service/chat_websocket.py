"""
WebSocket handler for anonymous chat connections
"""
import json
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from chat_service.broadcast import (
    EVENT_CHAT_ENDED, EVENT_CONNECTED, EVENT_MESSAGE, EVENT_WAITING, send_event
)
from chat_service.models import (
    ConnectionState, RelayMessage, SearchRequest, ServiceState
)
from chat_service.session_directory import MatchStatus

logger = logging.getLogger(__name__)


class ChatConnection:
    """One client connection and its matchmaking state.

    Inbound events all go through ``handle_event``. Transitions that affect the
    partner (being matched, being left) are applied to the partner's
    ``ChatConnection`` by whichever side caused them.
    """

    def __init__(self, websocket: WebSocket, service_state: ServiceState, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.service_state = service_state
        self.directory = service_state.directory
        self.connection_id = connection_id or uuid.uuid4().hex
        self.state = ConnectionState.UNMATCHED
        self.display_name: Optional[str] = None

    async def emit(self, event_type: str, **payload: Any) -> bool:
        return await send_event(self.websocket, event_type, **payload)

    async def handle_event(self, message: Dict[str, Any]):
        msg_type = message.get("type")

        if self.state == ConnectionState.TERMINATED:
            logger.debug(f"Chat: Ignoring '{msg_type}' from terminated connection '{self.connection_id}'.")
            return

        if msg_type == "search":
            await self._on_search(message)
        elif msg_type == "message":
            await self._on_message(message)
        elif msg_type == "end":
            await self._on_end()
        else:
            logger.warning(f"Chat: Connection '{self.connection_id}' sent unhandled event type: {msg_type}")

    async def _on_search(self, message: Dict[str, Any]):
        if self.state != ConnectionState.UNMATCHED:
            logger.info(f"Chat: Ignoring redundant search from '{self.connection_id}' in state {self.state.value}.")
            return

        try:
            request = SearchRequest.model_validate(message)
        except ValidationError as e:
            logger.warning(f"Chat: Invalid search from '{self.connection_id}': {e.errors()}")
            return

        logger.info(f"{request.username} is searching for a chat partner")
        result = self.directory.enqueue_or_match(self.connection_id, request.username)

        if result.status == MatchStatus.REJECTED:
            return

        self.display_name = request.username

        if result.status == MatchStatus.WAITING:
            self.state = ConnectionState.WAITING
            await self.emit(EVENT_WAITING)
            return

        self.state = ConnectionState.PAIRED
        partner = self.service_state.get_connection(result.partner_id)
        if partner is not None:
            partner.state = ConnectionState.PAIRED
        logger.info(f"Chat: Paired '{self.connection_id}' ({self.display_name}) with '{result.partner_id}' ({result.partner_name}).")

        await self.emit(EVENT_CONNECTED, partner_name=result.partner_name)
        if partner is None:
            return
        # Either side may have ended the chat while the first send was pending.
        if self.directory.partner_of(self.connection_id) != result.partner_id:
            logger.info(f"Chat: Pairing of '{self.connection_id}' with '{result.partner_id}' ended before '{result.partner_id}' was notified.")
            return
        await partner.emit(EVENT_CONNECTED, partner_name=self.display_name)

    async def _on_message(self, message: Dict[str, Any]):
        if self.state != ConnectionState.PAIRED:
            logger.debug(f"Chat: Dropping message from unpaired connection '{self.connection_id}'.")
            return

        try:
            relay = RelayMessage.model_validate(message)
        except ValidationError as e:
            logger.warning(f"Chat: Invalid message from '{self.connection_id}': {e.errors()}")
            return

        partner = self.service_state.get_connection(self.directory.partner_of(self.connection_id))
        if partner is None:
            logger.debug(f"Chat: Partner of '{self.connection_id}' is gone. Dropping message.")
            return
        await partner.emit(EVENT_MESSAGE, message=relay.message)

    async def _on_end(self):
        self.state = ConnectionState.UNMATCHED
        await self._leave_chat()

    async def _leave_chat(self):
        partner_id = self.directory.teardown(self.connection_id)
        if partner_id is None:
            return

        logger.info(f"Chat: '{self.connection_id}' left chat with '{partner_id}'.")
        partner = self.service_state.get_connection(partner_id)
        if partner is not None:
            partner.state = ConnectionState.UNMATCHED
            await partner.emit(EVENT_CHAT_ENDED)

    async def disconnect(self):
        """Retire this connection id and tell the partner, if any, that the chat is over."""
        if self.state == ConnectionState.TERMINATED:
            return
        self.state = ConnectionState.TERMINATED
        self.service_state.unregister(self.connection_id)
        await self._leave_chat()

    async def run(self):
        try:
            while True:
                frame = await self.websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000), frame.get("reason"))
                raw_data = frame.get("text")
                if raw_data is None:
                    logger.warning(f"Chat: Connection '{self.connection_id}' sent a non-text frame. Ignoring.")
                    continue
                try:
                    message = json.loads(raw_data)
                except json.JSONDecodeError:
                    logger.warning(f"Chat: Connection '{self.connection_id}' sent non-JSON: {raw_data!r}")
                    continue
                if not isinstance(message, dict):
                    logger.warning(f"Chat: Connection '{self.connection_id}' sent malformed JSON: {raw_data!r}")
                    continue
                await self.handle_event(message)

        except WebSocketDisconnect:
            logger.info(f"User disconnected: {self.connection_id}")
        except Exception:
            logger.exception(f"Unexpected error with chat connection '{self.connection_id}'.")
        finally:
            await self.disconnect()
            logger.info(f"Connection '{self.connection_id}' de-registered. Total connected: {len(self.service_state.connections)}")


async def websocket_chat_endpoint(websocket: WebSocket):
    """Handle WebSocket connection for a chat client"""
    await websocket.accept()
    service_state: ServiceState = websocket.app.state.service_state

    connection = ChatConnection(websocket, service_state)
    service_state.register(connection)
    logger.info(f"User connected: {connection.connection_id}")

    await connection.run()
