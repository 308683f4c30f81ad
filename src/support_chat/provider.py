from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from support_chat.app_config import SUPPORTED_PROVIDERS, ProviderConfig, RuntimeEnv
from support_chat.errors import UnsupportedProvider


@runtime_checkable
class ChatProvider(Protocol):
    name: str

    def validate_config(self) -> None:
        """Raise MissingCredential when the provider secret is absent or a placeholder."""
        ...

    async def complete(
        self,
        messages: Sequence[dict],
        max_output_tokens: int,
        model: str,
    ) -> str:
        """Run one chat completion and return the trimmed reply text.

        Raises EmptyCompletion when the provider returns no text and
        ProviderError for transport failures or error statuses.
        """
        ...


def create_provider(config: ProviderConfig, env: RuntimeEnv) -> ChatProvider:
    """Factory: create the ChatProvider selected by ``config.provider_name``."""
    name = config.provider_name.strip().lower()
    if name == "groq":
        from support_chat.providers.openai_provider import GroqProvider
        return GroqProvider(env.provider_api_key, env_var=env.provider_env_var, temperature=config.temperature)
    if name == "openai":
        from support_chat.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(env.provider_api_key, env_var=env.provider_env_var, temperature=config.temperature)
    if name == "anthropic":
        from support_chat.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(env.provider_api_key, env_var=env.provider_env_var, temperature=config.temperature)
    raise UnsupportedProvider(config.provider_name, SUPPORTED_PROVIDERS)
