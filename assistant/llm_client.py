"""Transport for the text generation service: prompt in, text out."""

import logging
from typing import Any, Optional

from .config import (
    LLM_API_KEY,
    LLM_BASE_URL,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_S,
)
from .logging_utils import log_interaction

__all__ = ["LLMClient"]

logger = logging.getLogger(__name__)


class LLMClient:
    """Async chat-completion client for an OpenAI-compatible endpoint.

    Every call and raw reply is written to the interaction log. Errors
    from the API propagate to the caller, which decides the fallback.
    """

    def __init__(
        self,
        model: str = LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
        base_url: Optional[str] = LLM_BASE_URL,
        api_key: Optional[str] = LLM_API_KEY,
        client: Any = None,
    ):
        self.model = model
        self.temperature = temperature
        self.base_url = base_url
        self.api_key = api_key
        self._client = client

    def _get_client(self) -> Any:
        """Get the OpenAI client (lazy initialization)."""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=LLM_TIMEOUT_S,
            )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        task: str = "completion",
    ) -> str:
        """Run one completion and return the stripped reply text.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: Task input.
            max_tokens: Reply length limit.
            task: Short name used in interaction log event types.

        Returns:
            Reply text ("" if the model returned nothing).
        """
        log_interaction(
            f"llm_call_{task}",
            {
                "model": self.model,
                "system_prompt": system_prompt,
                "prompt": user_prompt,
            },
        )

        client = self._get_client()
        resp = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=max_tokens,
        )

        raw = ""
        if resp.choices:
            raw = (resp.choices[0].message.content or "").strip()

        usage = getattr(resp, "usage", None)
        log_interaction(
            f"llm_response_{task}",
            {
                "model": self.model,
                "raw_response": raw,
                "usage": usage.model_dump() if hasattr(usage, "model_dump") else None,
            },
        )
        return raw
