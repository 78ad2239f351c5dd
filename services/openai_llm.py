# services/openai_llm.py
from __future__ import annotations

import logging

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class LLMService:
    """
    Thin wrapper over the OpenAI chat completions API.

    Keys belong to users, so every call takes the caller's key.
    """

    def __init__(self, model: str = "gpt-4o-mini", timeout: float | None = None) -> None:
        self.model = model
        self.timeout = timeout

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key, timeout=self.timeout)

    async def extract_json(
        self,
        api_key: str,
        system_prompt: str,
        user_message: str,
        *,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
    ) -> str:
        """Run a completion expecting JSON output. Returns the raw JSON text."""
        model = model or self.model
        client = self._client(api_key)

        logger.info("LLM: requesting JSON completion from %s", model)
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
        text = response.choices[0].message.content or ""
        logger.info("LLM: got %d chars response", len(text))
        return text
