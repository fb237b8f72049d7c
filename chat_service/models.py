"""
Data models and shared state for the chat service
"""
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import BaseModel, StrictStr, field_validator

from chat_service.session_directory import SessionDirectory

if TYPE_CHECKING:
    from chat_service.chat_websocket import ChatConnection


# Pydantic models for inbound event payloads
class SearchRequest(BaseModel):
    username: StrictStr

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, value: str) -> str:
        """Reject blank names; the partner is shown the name exactly as sent."""
        if not value.strip():
            raise ValueError("username must not be blank")
        return value


class RelayMessage(BaseModel):
    message: StrictStr


class DirectoryStats(BaseModel):
    waiting_count: int
    active_pairs: int
    connected_count: int
    waiting_ids: List[str]


class ConnectionState(Enum):
    UNMATCHED = "unmatched"
    WAITING = "waiting"
    PAIRED = "paired"
    TERMINATED = "terminated"


class ServiceState:
    """Container for all service state, built once per application"""
    def __init__(self, directory: Optional[SessionDirectory] = None):
        self.directory = directory or SessionDirectory()

        # Live chat connections: connection_id -> ChatConnection
        self.connections: Dict[str, "ChatConnection"] = {}

    def register(self, connection: "ChatConnection"):
        self.connections[connection.connection_id] = connection

    def unregister(self, connection_id: str):
        self.connections.pop(connection_id, None)

    def get_connection(self, connection_id: Optional[str]) -> Optional["ChatConnection"]:
        if connection_id is None:
            return None
        return self.connections.get(connection_id)

    def stats(self) -> DirectoryStats:
        snapshot = self.directory.snapshot()
        return DirectoryStats(
            waiting_count=snapshot["waiting_count"],
            active_pairs=snapshot["active_pairs"],
            connected_count=len(self.connections),
            waiting_ids=snapshot["waiting_ids"],
        )
