from __future__ import annotations

from collections.abc import Sequence

import anthropic
from loguru import logger

from support_chat.errors import EmptyCompletion, ProviderError
from support_chat.providers.common import ensure_credential, require_user_turn


def _split_system(messages: Sequence[dict]) -> tuple[str, list[dict]]:
    """Anthropic takes the system prompt as a separate argument."""
    system_parts: list[str] = []
    turns: list[dict] = []
    for msg in messages:
        if msg["role"] == "system":
            system_parts.append(msg["content"])
        else:
            turns.append({"role": msg["role"], "content": msg["content"]})
    return "\n\n".join(system_parts), turns


class AnthropicProvider:
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        *,
        env_var: str = "ANTHROPIC_API_KEY",
        temperature: float = 0.7,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self._api_key = api_key
        self._env_var = env_var
        self._temperature = temperature
        self._client = client

    def validate_config(self) -> None:
        ensure_credential(self.name, self._api_key, self._env_var)

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key, max_retries=0)
        return self._client

    async def complete(
        self,
        messages: Sequence[dict],
        max_output_tokens: int,
        model: str,
    ) -> str:
        require_user_turn(messages)
        system_prompt, turns = _split_system(messages)
        kwargs: dict = dict(
            model=model,
            max_tokens=max_output_tokens,
            temperature=self._temperature,
            messages=turns,
        )
        if system_prompt:
            kwargs["system"] = system_prompt

        logger.debug(f"anthropic request: model={model}, max_tokens={max_output_tokens}, messages={len(turns)}")
        try:
            response = await self._get_client().messages.create(**kwargs)
        except anthropic.APIStatusError as exc:
            raise ProviderError(self.name, exc.status_code, exc.message) from exc
        except anthropic.APIConnectionError as exc:
            raise ProviderError(self.name, None, str(exc)) from exc
        except anthropic.APIError as exc:
            raise ProviderError(self.name, None, str(exc)) from exc

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text.strip():
            raise EmptyCompletion(self.name)

        usage = response.usage
        logger.debug(
            f"anthropic response: stop_reason={response.stop_reason}, "
            f"input_tokens={usage.input_tokens}, output_tokens={usage.output_tokens}"
        )
        return text.strip()
