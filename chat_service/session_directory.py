"""
Waiting queue and pairing map for random chat matchmaking
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


class DirectoryInvariantError(RuntimeError):
    """Raised when a connection id is found in an impossible place"""


@dataclass(frozen=True)
class WaitingEntry:
    connection_id: str
    display_name: str


class MatchStatus(Enum):
    WAITING = "waiting"
    MATCHED = "matched"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MatchResult:
    status: MatchStatus
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None


class SessionDirectory:
    """In-memory waiting queue plus the active pairing map.

    Every public method takes ``self._lock`` for its whole body, so a search
    either pairs with whoever is queued right now or becomes the queued entry,
    and no caller ever sees a partner dequeued but not yet paired.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._waiting: Deque[WaitingEntry] = deque()
        # connection_id -> partner connection_id, always stored both ways
        self._pairs: Dict[str, str] = {}

    def enqueue_or_match(self, connection_id: str, display_name: str) -> MatchResult:
        with self._lock:
            if connection_id in self._pairs or self._queued(connection_id):
                logger.warning(f"Directory: '{connection_id}' is already waiting or paired. Rejecting search.")
                return MatchResult(MatchStatus.REJECTED)

            if self._waiting:
                partner = self._waiting.popleft()
                self._pairs[connection_id] = partner.connection_id
                self._pairs[partner.connection_id] = connection_id
                logger.debug(f"Directory: Paired '{connection_id}' with '{partner.connection_id}'.")
                return MatchResult(MatchStatus.MATCHED, partner.connection_id, partner.display_name)

            self._waiting.append(WaitingEntry(connection_id, display_name))
            logger.debug(f"Directory: '{connection_id}' queued. Waiting: {len(self._waiting)}")
            return MatchResult(MatchStatus.WAITING)

    def remove_from_waiting(self, connection_id: str) -> bool:
        with self._lock:
            return self._remove_waiting(connection_id)

    def end_pairing(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._unpair(connection_id)

    def teardown(self, connection_id: str) -> Optional[str]:
        """Drop ``connection_id`` from both structures and return its former partner, if any."""
        with self._lock:
            partner_id = self._unpair(connection_id)
            self._remove_waiting(connection_id)
            return partner_id

    def partner_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._pairs.get(connection_id)

    def is_waiting(self, connection_id: str) -> bool:
        with self._lock:
            return self._queued(connection_id)

    def waiting_ids(self) -> List[str]:
        with self._lock:
            return [entry.connection_id for entry in self._waiting]

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "waiting_count": len(self._waiting),
                "active_pairs": len(self._pairs) // 2,
            }

    def snapshot(self) -> Dict[str, Any]:
        """Counts and queue order taken under one lock acquisition."""
        with self._lock:
            return {
                "waiting_count": len(self._waiting),
                "active_pairs": len(self._pairs) // 2,
                "waiting_ids": [entry.connection_id for entry in self._waiting],
            }

    def check_invariants(self):
        with self._lock:
            queued = [entry.connection_id for entry in self._waiting]
            if len(queued) != len(set(queued)):
                raise DirectoryInvariantError(f"Duplicate entries in waiting queue: {queued}")
            for conn_id, partner_id in self._pairs.items():
                if conn_id == partner_id:
                    raise DirectoryInvariantError(f"'{conn_id}' is paired with itself")
                if self._pairs.get(partner_id) != conn_id:
                    raise DirectoryInvariantError(f"Pairing '{conn_id}' -> '{partner_id}' is not symmetric")
                if conn_id in queued:
                    raise DirectoryInvariantError(f"'{conn_id}' is both waiting and paired")

    # Helpers below expect the lock to be held.

    def _queued(self, connection_id: str) -> bool:
        return any(entry.connection_id == connection_id for entry in self._waiting)

    def _remove_waiting(self, connection_id: str) -> bool:
        for entry in self._waiting:
            if entry.connection_id == connection_id:
                self._waiting.remove(entry)
                return True
        return False

    def _unpair(self, connection_id: str) -> Optional[str]:
        partner_id = self._pairs.pop(connection_id, None)
        if partner_id is not None:
            self._pairs.pop(partner_id, None)
        return partner_id
