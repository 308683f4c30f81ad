from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from support_chat.app_config import ProviderConfig
from support_chat.errors import ProviderError, ReplyGenerationError, RetriesExhausted
from support_chat.provider import ChatProvider
from support_chat.system_prompt import get_system_prompt

RATE_LIMITED = 429

SleepFn = Callable[[float], Awaitable[None]]


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.status_code == RATE_LIMITED


def _on_retry(retry_state: RetryCallState) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    provider = getattr(exc, "provider", "provider")
    logger.warning(f"{provider} rate limit hit. Retrying in {wait:.0f}s (attempt {attempt} failed)...")


def _chat_role(role: str) -> str:
    return "user" if role == "user" else "assistant"


class ReplyGenerator:
    """Builds the bounded prompt and drives one provider through rate-limit retries."""

    def __init__(
        self,
        config: ProviderConfig,
        provider: ChatProvider,
        *,
        system_prompt: str | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._config = config
        self._provider = provider
        self._system_prompt = system_prompt if system_prompt is not None else get_system_prompt()
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return self._provider.name

    def build_messages(self, history: Sequence[dict], user_message: str) -> list[dict]:
        """System instructions, then the last N history turns oldest-first, then the new turn."""
        messages = [{"role": "system", "content": self._system_prompt}]
        limit = self._config.max_context_messages
        recent = list(history)[-limit:] if limit > 0 else []
        for turn in recent:
            messages.append({"role": _chat_role(turn["role"]), "content": turn["text"]})
        messages.append({"role": "user", "content": user_message})
        return messages

    async def generate_reply(
        self,
        history: Sequence[dict],
        user_message: str,
        retries: int = 2,
    ) -> str:
        provider = self._provider
        provider.validate_config()

        messages = self.build_messages(history, user_message)
        model = self._config.model_for(provider.name).default

        attempts = 0
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_rate_limited),
            wait=wait_exponential(multiplier=1, exp_base=2),
            stop=stop_after_attempt(max(0, retries) + 1),
            sleep=self._sleep,
            before_sleep=_on_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    reply = await provider.complete(messages, self._config.max_tokens, model)
        except Exception as exc:
            logger.error(
                f"{provider.name} API error: status={getattr(exc, 'status_code', None)}, "
                f"attempt={attempts}/{max(0, retries) + 1}, error={exc}"
            )
            if _is_rate_limited(exc):
                raise RetriesExhausted(provider.name, attempts, exc) from exc
            raise ReplyGenerationError(provider.name, attempts, exc) from exc

        return reply
