"""Per-connection chat sessions and the gate that serialises their turns."""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from docchat.config import DEFAULT_SYSTEM_PROMPT
from docchat.models import ChatMessage

LOGGER = logging.getLogger(__name__)


class TurnState(str, Enum):
    IDLE = "idle"
    GATE_ACQUIRED = "gate_acquired"
    STREAMING = "streaming"
    ABORTED = "aborted"


@dataclass(slots=True, eq=False)
class ChatSession:
    """Conversation state for one connection. Never persisted."""

    session_id: str
    model_id: str
    history: List[ChatMessage] = field(default_factory=list)
    gate: asyncio.Lock = field(default_factory=asyncio.Lock)
    state: TurnState = TurnState.IDLE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionManager:
    """Keyed store of live sessions with atomic get-or-create."""

    def __init__(self, default_system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self.default_system_prompt = default_system_prompt
        self._sessions: Dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        connection_id: str,
        model_id: str,
        system_prompt: Optional[str] = None,
    ) -> ChatSession:
        """Return the live session for ``connection_id``, creating it on first use.

        The first call wins: later calls never change the model id or the
        seeded system prompt of an existing session.
        """

        with self._lock:
            session = self._sessions.get(connection_id)
            if session is not None:
                return session
            prompt = system_prompt if system_prompt and system_prompt.strip() else self.default_system_prompt
            session = ChatSession(
                session_id=connection_id,
                model_id=model_id,
                history=[ChatMessage.system(prompt)],
            )
            self._sessions[connection_id] = session
        LOGGER.info("Created chat session %s for model %s", connection_id, model_id)
        return session

    def try_get(self, connection_id: str) -> Optional[ChatSession]:
        with self._lock:
            return self._sessions.get(connection_id)

    def end(self, connection_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(connection_id, None)
        if session is None:
            return False
        LOGGER.info("Ended chat session %s", connection_id)
        return True

    def history_count(self, connection_id: str) -> int:
        session = self.try_get(connection_id)
        return len(session.history) if session is not None else 0

    def active_sessions(self) -> List[str]:
        with self._lock:
            return list(self._sessions)
