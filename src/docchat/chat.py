"""Conversational turns: retrieval-augmented prompts streamed from a chat model."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterator, List, Optional, Sequence

from docchat.models import ChatMessage, RetrievedChunk
from docchat.providers.base import ChatModel
from docchat.services.retrieval import RetrievalService
from docchat.sessions import SessionManager, TurnState
from docchat.telemetry import emit_chat_turn_event, emit_exception, emit_prompt_event

LOGGER = logging.getLogger(__name__)

CONTEXT_PREFIX = (
    "The following context may be relevant to the user's last question. "
    "Use it to answer accurately. If the answer isn't in the context, say you don't know.\n\n"
)
DEFAULT_CONTEXT_MAX_CHARS = 4000


def format_context_entry(chunk: RetrievedChunk) -> str:
    return (
        f"[DocId: {chunk.document_id}, Chunk: {chunk.chunk_index}, Score: {chunk.score:.4f}]\n"
        f"{chunk.content}\n---\n"
    )


def build_context_block(
    chunks: Sequence[RetrievedChunk], max_chars: int = DEFAULT_CONTEXT_MAX_CHARS
) -> str:
    """Concatenate entries by ascending score; stop at the first one over budget."""

    block = ""
    for chunk in sorted(chunks, key=lambda item: item.score):
        entry = format_context_entry(chunk)
        if len(block) + len(entry) > max_chars:
            break
        block += entry
    return block


def build_augmented_history(
    history: Sequence[ChatMessage], context_block: str
) -> List[ChatMessage]:
    """Copy ``history`` and append the context as a system message when present."""

    messages = [ChatMessage(message.role, message.content) for message in history]
    if context_block:
        messages.append(ChatMessage.system(CONTEXT_PREFIX + context_block))
    return messages


class ChatOrchestrator:
    """Run one streamed turn per call, at most one in flight per session."""

    def __init__(
        self,
        *,
        sessions: SessionManager,
        retrieval: RetrievalService,
        chat_model: ChatModel,
        top_k: int = 5,
        context_max_chars: int = DEFAULT_CONTEXT_MAX_CHARS,
    ) -> None:
        self.sessions = sessions
        self.retrieval = retrieval
        self.chat_model = chat_model
        self.top_k = top_k
        self.context_max_chars = context_max_chars

    async def stream_turn(
        self,
        connection_id: str,
        model_id: str,
        user_message: str,
        *,
        temperature: float = 0.2,
        max_tokens: int = 800,
        system_prompt: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Yield response fragments for ``user_message``.

        The user message is appended to history once the gate is held. The
        assistant reply is appended only when the stream completes; a
        cancelled or failed turn leaves no assistant message behind.
        """

        session = self.sessions.get_or_create(connection_id, model_id, system_prompt)
        async with session.gate:
            session.state = TurnState.GATE_ACQUIRED
            started = time.perf_counter()
            fragments = 0
            response_parts: List[str] = []
            emit_chat_turn_event(
                "chat.turn.start",
                session_id=connection_id,
                model_id=session.model_id,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            try:
                session.history.append(ChatMessage.user(user_message))

                retrieved = await self.retrieval.retrieve(user_message, self.top_k)
                context_block = build_context_block(retrieved, self.context_max_chars)
                messages = build_augmented_history(session.history, context_block)
                emit_prompt_event(
                    session_id=connection_id,
                    sources=[f"{chunk.document_id}:{chunk.chunk_index}" for chunk in retrieved],
                    context_chars=len(context_block),
                    history_messages=len(session.history),
                )

                session.state = TurnState.STREAMING
                async for fragment in self.chat_model.stream(
                    messages,
                    model_id=session.model_id,
                    temperature=temperature,
                    max_tokens=max_tokens,
                ):
                    if not fragment:
                        continue
                    response_parts.append(fragment)
                    fragments += 1
                    yield fragment

                response = "".join(response_parts)
                session.history.append(ChatMessage.assistant(response))
                emit_chat_turn_event(
                    "chat.turn.complete",
                    session_id=connection_id,
                    model_id=session.model_id,
                    duration_ms=(time.perf_counter() - started) * 1000.0,
                    response_chars=len(response),
                    fragments=fragments,
                )
            except (asyncio.CancelledError, GeneratorExit):
                session.state = TurnState.ABORTED
                emit_chat_turn_event(
                    "chat.turn.cancelled",
                    session_id=connection_id,
                    model_id=session.model_id,
                    duration_ms=(time.perf_counter() - started) * 1000.0,
                    response_chars=sum(len(part) for part in response_parts),
                    fragments=fragments,
                )
                raise
            except Exception as error:
                session.state = TurnState.ABORTED
                emit_exception(module=f"{__name__}.stream_turn", error=error, session_id=connection_id)
                raise
            finally:
                session.state = TurnState.IDLE

    def history_count(self, connection_id: str) -> int:
        return self.sessions.history_count(connection_id)

    def clear_history(self, connection_id: str) -> bool:
        """Drop the session; the next turn starts from a fresh system prompt."""

        return self.sessions.end(connection_id)


__all__ = [
    "CONTEXT_PREFIX",
    "ChatOrchestrator",
    "TurnState",
    "build_augmented_history",
    "build_context_block",
    "format_context_entry",
]
