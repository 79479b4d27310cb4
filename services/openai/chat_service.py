"""Chat completions for standard-mode conversation turns."""

import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

CHAT_MODEL = "gpt-4o"


class ChatService:
    """Thin wrapper over `chat.completions.create` with the relay's defaults."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = CHAT_MODEL,
        max_tokens: int = 300,
        temperature: float = 0.7,
    ) -> None:
        if client is None:
            raise ValueError("OpenAI AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Any:
        """Run one completion and return the first choice's message.

        Args:
            messages: Ordered chat history, system prompt first.
            tools: Optional function tool definitions; `tool_choice` is "auto" when given.

        Returns:
            The `ChatCompletionMessage` of the first choice.
        """
        start = time.time()
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as exc:
            logging.error(f"OpenAI chat completion error: {exc}")
            raise

        logging.info(f"Chat completion latency: {time.time() - start:.3f}s")
        return response.choices[0].message
