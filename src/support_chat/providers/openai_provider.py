from __future__ import annotations

from collections.abc import Sequence

import openai
from loguru import logger

from support_chat.errors import EmptyCompletion, ProviderError
from support_chat.providers.common import ensure_credential, require_user_turn


class OpenAIProvider:
    name = "openai"
    base_url: str | None = None

    def __init__(
        self,
        api_key: str,
        *,
        env_var: str = "OPENAI_API_KEY",
        temperature: float = 0.7,
        client: openai.AsyncOpenAI | None = None,
    ):
        self._api_key = api_key
        self._env_var = env_var
        self._temperature = temperature
        self._client = client

    def validate_config(self) -> None:
        ensure_credential(self.name, self._api_key, self._env_var)

    def _get_client(self) -> openai.AsyncOpenAI:
        # Created on first use so a missing key never reaches the SDK constructor.
        # SDK retries are off; ReplyGenerator owns the retry policy.
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self.base_url, max_retries=0)
        return self._client

    async def complete(
        self,
        messages: Sequence[dict],
        max_output_tokens: int,
        model: str,
    ) -> str:
        require_user_turn(messages)
        logger.debug(
            f"{self.name} request: model={model}, max_tokens={max_output_tokens}, messages={len(messages)}"
        )
        try:
            response = await self._get_client().chat.completions.create(
                model=model,
                messages=[{"role": m["role"], "content": m["content"]} for m in messages],
                temperature=self._temperature,
                max_tokens=max_output_tokens,
            )
        except openai.APIStatusError as exc:
            raise ProviderError(self.name, exc.status_code, exc.message) from exc
        except openai.APIConnectionError as exc:
            raise ProviderError(self.name, None, str(exc)) from exc
        except openai.APIError as exc:
            raise ProviderError(self.name, None, str(exc)) from exc

        choice = response.choices[0] if response.choices else None
        text = (choice.message.content if choice is not None else None) or ""
        if not text.strip():
            raise EmptyCompletion(self.name)

        logger.debug(f"{self.name} response: len={len(text)}")
        return text.strip()


class GroqProvider(OpenAIProvider):
    """Groq serves an OpenAI-compatible chat completions endpoint."""

    name = "groq"
    base_url = "https://api.groq.com/openai/v1"
