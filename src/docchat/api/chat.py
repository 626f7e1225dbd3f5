"""WebSocket endpoint streaming conversational turns.

Each socket is one chat session. Client messages::

    {"type": "chat", "model_id": "...", "message": "...", "temperature": 0.2,
     "max_tokens": 800, "system_prompt": null}
    {"type": "cancel"}
    {"type": "history_count"}
    {"type": "clear_history"}

Server messages carry ``type`` ``token``, ``done``, ``cancelled``, ``error``,
``history_count`` or ``history_cleared``. Closing the socket ends the session.
"""
from __future__ import annotations

import asyncio
import functools
import json
import logging
import uuid
from contextlib import aclosing
from typing import Any, Dict, Set

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from docchat.chat import ChatOrchestrator
from docchat.config import get_settings
from docchat.dependencies import get_chat_orchestrator
from docchat.errors import DocChatError

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _option(payload: Dict[str, Any], key: str, default: Any) -> Any:
    value = payload.get(key)
    return default if value is None else value


async def _run_turn(
    websocket: WebSocket,
    orchestrator: ChatOrchestrator,
    connection_id: str,
    payload: Dict[str, Any],
) -> None:
    model_id = str(payload.get("model_id") or get_settings().chat_model)
    try:
        temperature = float(_option(payload, "temperature", 0.2))
        max_tokens = int(_option(payload, "max_tokens", 800))
    except (TypeError, ValueError):
        await websocket.send_json({"type": "error", "detail": "temperature and max_tokens must be numeric"})
        return

    stream = orchestrator.stream_turn(
        connection_id,
        model_id,
        payload["message"],
        temperature=temperature,
        max_tokens=max_tokens,
        system_prompt=payload.get("system_prompt"),
    )
    try:
        async with aclosing(stream):
            async for fragment in stream:
                await websocket.send_json({"type": "token", "content": fragment})
    except DocChatError as exc:
        await websocket.send_json({"type": "error", "detail": str(exc)})
        return
    except Exception as exc:
        LOGGER.exception("Chat turn failed for connection %s", connection_id)
        await websocket.send_json({"type": "error", "detail": f"Chat model failure: {exc}"})
        return
    await websocket.send_json({"type": "done"})


def _turn_finished(turns: Set[asyncio.Task], task: asyncio.Task) -> None:
    turns.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        LOGGER.error("Chat turn task ended with an unhandled error", exc_info=error)


async def _cancel_turns(turns: Set[asyncio.Task]) -> int:
    pending = [task for task in turns if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.wait(pending)
    return len(pending)


@router.websocket("/ws/chat")
async def websocket_chat(
    websocket: WebSocket,
    orchestrator: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> None:
    await websocket.accept()
    connection_id = uuid.uuid4().hex
    turns: Set[asyncio.Task] = set()
    LOGGER.info("WebSocket connection %s established", connection_id)

    try:
        while True:
            raw_data = await websocket.receive_text()
            try:
                data = json.loads(raw_data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "Invalid JSON format"})
                continue
            if not isinstance(data, dict):
                await websocket.send_json({"type": "error", "detail": "Message must be a JSON object"})
                continue

            message_type = data.get("type")
            if message_type == "chat":
                message = data.get("message")
                if not isinstance(message, str) or not message.strip():
                    await websocket.send_json({"type": "error", "detail": "Message is required"})
                    continue
                task = asyncio.create_task(_run_turn(websocket, orchestrator, connection_id, data))
                turns.add(task)
                task.add_done_callback(functools.partial(_turn_finished, turns))
            elif message_type == "cancel":
                if await _cancel_turns(turns):
                    await websocket.send_json({"type": "cancelled"})
            elif message_type == "history_count":
                await websocket.send_json(
                    {"type": "history_count", "count": orchestrator.history_count(connection_id)}
                )
            elif message_type == "clear_history":
                await _cancel_turns(turns)
                orchestrator.clear_history(connection_id)
                await websocket.send_json({"type": "history_cleared"})
            else:
                await websocket.send_json(
                    {"type": "error", "detail": f"Unknown message type: {message_type!r}"}
                )
    except WebSocketDisconnect:
        LOGGER.info("WebSocket connection %s closed", connection_id)
    finally:
        await _cancel_turns(turns)
        orchestrator.clear_history(connection_id)
