"""
Model client for structured (JSON) chat completions.

The pipeline only depends on the ModelClient protocol - one method,
complete_json(). Production uses OpenAIModelClient; tests pass a stub that
returns canned content.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from utils.errors import ModelAuthenticationError, ModelError

logger = logging.getLogger(__name__)

# USD per 1M tokens, blended input/output
COST_PER_MILLION_TOKENS = {
    "gpt-4o-mini": 0.15,
    "gpt-4o": 5.0,
}
DEFAULT_COST_PER_MILLION_TOKENS = 0.03


@dataclass
class ModelCompletion:
    """Raw completion text plus usage."""
    content: str
    total_tokens: int = 0


class ModelClient(Protocol):
    """Anything that can answer a system+user prompt with a JSON body."""

    async def complete_json(self, system: str, user: str, max_tokens: int) -> ModelCompletion:
        ...


def estimate_cost(model: str, tokens: int) -> float:
    rate = COST_PER_MILLION_TOKENS.get(model, DEFAULT_COST_PER_MILLION_TOKENS)
    return tokens / 1_000_000 * rate


class OpenAIModelClient:
    """
    Chat completions in JSON mode via the OpenAI SDK.

    The SDK client is created on first use so a missing API key surfaces as
    ModelAuthenticationError inside a run rather than at startup.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.1,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url or None
        self.temperature = temperature
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise ModelAuthenticationError("OPENAI_API_KEY is not configured")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def complete_json(self, system: str, user: str, max_tokens: int) -> ModelCompletion:
        """
        Raises:
            ModelAuthenticationError: Credentials missing or rejected (fatal for the run)
            ModelError: Any other API failure (isolated to the calling batch)
        """
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                response_format={"type": "json_object"},
                max_tokens=max_tokens,
                temperature=self.temperature,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ModelAuthenticationError(f"Model endpoint rejected credentials: {e}") from e
        except openai.APIError as e:
            raise ModelError(f"{type(e).__name__}: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        tokens = response.usage.total_tokens if response.usage else 0
        return ModelCompletion(content=content or "", total_tokens=tokens)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
