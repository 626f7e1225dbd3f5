"""Tests for streamed, retrieval-augmented chat turns."""
from __future__ import annotations

import asyncio
import uuid
from typing import AsyncIterator, List, Sequence

import pytest

from docchat.chat import (
    CONTEXT_PREFIX,
    ChatOrchestrator,
    build_augmented_history,
    build_context_block,
    format_context_entry,
)
from docchat.models import ChatMessage, ChatRole, RetrievedChunk
from docchat.providers import ChatModel
from docchat.sessions import SessionManager, TurnState

DOC_ID = uuid.UUID("12345678-1234-5678-1234-567812345678")


class FakeRetrieval:
    def __init__(self, chunks: Sequence[RetrievedChunk] = ()) -> None:
        self.chunks = list(chunks)
        self.calls: List[tuple[str, int]] = []

    async def retrieve(self, query: str, top_k: int = 5) -> List[RetrievedChunk]:
        self.calls.append((query, top_k))
        return list(self.chunks)


class ScriptedChatModel(ChatModel):
    """Yields fixed fragments and records what it was asked."""

    def __init__(
        self,
        fragments: Sequence[str] = ("Hello", " there"),
        *,
        delay: float = 0.0,
        fail_after: int | None = None,
    ) -> None:
        self.fragments = list(fragments)
        self.delay = delay
        self.fail_after = fail_after
        self.requests: List[List[ChatMessage]] = []
        self.events: List[str] = []

    async def stream(self, messages, *, model_id, temperature, max_tokens) -> AsyncIterator[str]:
        self.requests.append(list(messages))
        label = next(m.content for m in reversed(messages) if m.role is ChatRole.USER)
        self.events.append(f"start:{label}")
        for index, fragment in enumerate(self.fragments):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("model crashed")
            await asyncio.sleep(self.delay)
            yield fragment
        self.events.append(f"end:{label}")


def _orchestrator(model: ChatModel, retrieval: FakeRetrieval | None = None, **kwargs) -> ChatOrchestrator:
    return ChatOrchestrator(
        sessions=SessionManager(),
        retrieval=retrieval or FakeRetrieval(),
        chat_model=model,
        **kwargs,
    )


async def _collect(orchestrator: ChatOrchestrator, connection_id: str, message: str) -> List[str]:
    return [fragment async for fragment in orchestrator.stream_turn(connection_id, "model", message)]


def test_completed_turn_appends_user_and_assistant_messages() -> None:
    model = ScriptedChatModel(["", "Hel", "", "lo"])
    orchestrator = _orchestrator(model)

    fragments = asyncio.run(_collect(orchestrator, "conn", "hi"))

    session = orchestrator.sessions.try_get("conn")
    assert fragments == ["Hel", "lo"]
    assert [message.role for message in session.history] == [
        ChatRole.SYSTEM,
        ChatRole.USER,
        ChatRole.ASSISTANT,
    ]
    assert session.history[-1].content == "Hello"
    assert session.state is TurnState.IDLE
    assert orchestrator.history_count("conn") == 3


def test_retrieved_context_is_ephemeral() -> None:
    chunks = [
        RetrievedChunk(document_id=DOC_ID, chunk_index=3, content="far", score=0.5),
        RetrievedChunk(document_id=DOC_ID, chunk_index=1, content="near", score=0.1),
    ]
    retrieval = FakeRetrieval(chunks)
    model = ScriptedChatModel()
    orchestrator = _orchestrator(model, retrieval, top_k=7)

    asyncio.run(_collect(orchestrator, "conn", "question"))

    sent = model.requests[0]
    context_message = sent[-1]
    assert context_message.role is ChatRole.SYSTEM
    assert context_message.content == (
        CONTEXT_PREFIX
        + f"[DocId: {DOC_ID}, Chunk: 1, Score: 0.1000]\nnear\n---\n"
        + f"[DocId: {DOC_ID}, Chunk: 3, Score: 0.5000]\nfar\n---\n"
    )
    assert retrieval.calls == [("question", 7)]

    history = orchestrator.sessions.try_get("conn").history
    assert all(CONTEXT_PREFIX not in message.content for message in history)
    assert len(history) == 3


def test_turns_on_one_session_are_serialised() -> None:
    model = ScriptedChatModel(["a", "b", "c"], delay=0.01)
    orchestrator = _orchestrator(model)

    async def scenario():
        await asyncio.gather(
            _collect(orchestrator, "conn", "first"),
            _collect(orchestrator, "conn", "second"),
        )

    asyncio.run(scenario())

    assert model.events == ["start:first", "end:first", "start:second", "end:second"]
    assert orchestrator.history_count("conn") == 5


def test_turns_on_different_sessions_overlap() -> None:
    model = ScriptedChatModel(["a", "b", "c"], delay=0.01)
    orchestrator = _orchestrator(model)

    async def scenario():
        await asyncio.gather(
            _collect(orchestrator, "one", "first"),
            _collect(orchestrator, "two", "second"),
        )

    asyncio.run(scenario())

    assert model.events.index("start:second") < model.events.index("end:first")


def test_closing_the_stream_cancels_without_assistant_message() -> None:
    model = ScriptedChatModel(["a", "b", "c"])
    orchestrator = _orchestrator(model)

    async def scenario():
        stream = orchestrator.stream_turn("conn", "model", "hi")
        first = await stream.__anext__()
        await stream.aclose()
        return first

    assert asyncio.run(scenario()) == "a"

    session = orchestrator.sessions.try_get("conn")
    assert [message.role for message in session.history] == [ChatRole.SYSTEM, ChatRole.USER]
    assert not session.gate.locked()
    assert session.state is TurnState.IDLE


def test_task_cancellation_releases_the_gate() -> None:
    model = ScriptedChatModel(["a"] * 50, delay=0.01)
    orchestrator = _orchestrator(model)

    async def scenario():
        task = asyncio.create_task(_collect(orchestrator, "conn", "slow"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        session = orchestrator.sessions.try_get("conn")
        after_cancel = len(session.history)
        locked = session.gate.locked()

        model.fragments = ["done"]
        model.delay = 0.0
        follow_up = await _collect(orchestrator, "conn", "again")
        return after_cancel, locked, follow_up, len(session.history)

    after_cancel, locked, follow_up, final_length = asyncio.run(scenario())

    assert after_cancel == 2
    assert locked is False
    assert follow_up == ["done"]
    assert final_length == 4


def test_model_failure_propagates_and_keeps_user_message() -> None:
    model = ScriptedChatModel(["a", "b"], fail_after=1)
    orchestrator = _orchestrator(model)

    async def scenario():
        received: List[str] = []
        with pytest.raises(RuntimeError, match="model crashed"):
            async for fragment in orchestrator.stream_turn("conn", "model", "hi"):
                received.append(fragment)
        return received

    assert asyncio.run(scenario()) == ["a"]

    session = orchestrator.sessions.try_get("conn")
    assert len(session.history) == 2
    assert not session.gate.locked()


def test_clear_history_ends_the_session() -> None:
    orchestrator = _orchestrator(ScriptedChatModel())
    asyncio.run(_collect(orchestrator, "conn", "hi"))

    assert orchestrator.clear_history("conn") is True
    assert orchestrator.history_count("conn") == 0
    assert orchestrator.sessions.try_get("conn") is None


def test_context_block_stops_at_first_entry_over_budget() -> None:
    big = RetrievedChunk(document_id=DOC_ID, chunk_index=0, content="x" * 200, score=0.2)
    small = RetrievedChunk(document_id=DOC_ID, chunk_index=1, content="y", score=0.3)
    best = RetrievedChunk(document_id=DOC_ID, chunk_index=2, content="z", score=0.1)
    budget = 2 * len(format_context_entry(best)) + 5

    block = build_context_block([small, big, best], max_chars=budget)

    assert block == format_context_entry(best)
    assert len(block) <= budget
    assert build_context_block([], max_chars=budget) == ""


def test_augmented_history_without_context_is_a_plain_copy() -> None:
    history = [ChatMessage.system("sys"), ChatMessage.user("hi")]

    augmented = build_augmented_history(history, "")

    assert augmented == history
    assert augmented is not history
