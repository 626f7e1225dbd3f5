"""Mock chat model that streams a deterministic reply word by word."""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, Sequence

from docchat.models import ChatMessage, ChatRole

from .base import ChatModel


class MockChatModel(ChatModel):
    """Echo the last user message back as a stream of fragments."""

    def __init__(self, *, delay: float = 0.0) -> None:
        self.delay = delay

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model_id: str,
        temperature: float,
        max_tokens: int,
    ) -> AsyncIterator[str]:
        question = next(
            (message.content for message in reversed(messages) if message.role is ChatRole.USER),
            "",
        )
        words = f"MOCK_ANSWER: {question[:100]}".split(" ")
        for index, word in enumerate(words[: max(max_tokens, 1)]):
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            yield word if index == 0 else f" {word}"
