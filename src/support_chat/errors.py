from __future__ import annotations


class ChatRelayError(Exception):
    """Base class for every failure raised by the relay."""


class MissingCredential(ChatRelayError):
    def __init__(self, provider: str, env_var: str):
        super().__init__(f"{env_var} is not configured for provider {provider!r}")
        self.provider = provider
        self.env_var = env_var


class UnsupportedProvider(ChatRelayError):
    def __init__(self, provider: str, supported: tuple[str, ...]):
        super().__init__(
            f"Unsupported LLM provider: {provider!r}. Supported providers: {', '.join(supported)}"
        )
        self.provider = provider
        self.supported = supported


class ProviderError(ChatRelayError):
    """The provider call failed; ``status_code`` is None for transport failures."""

    def __init__(self, provider: str, status_code: int | None, provider_message: str):
        super().__init__(f"{provider} request failed (status={status_code}): {provider_message}")
        self.provider = provider
        self.status_code = status_code
        self.provider_message = provider_message


class EmptyCompletion(ChatRelayError):
    status_code: int | None = None

    def __init__(self, provider: str):
        super().__init__(f"No response text from {provider}")
        self.provider = provider


class ReplyGenerationError(ChatRelayError):
    """Terminal failure of the reply pipeline, annotated with provider and attempt count."""

    def __init__(self, provider: str, attempts: int, cause: Exception):
        super().__init__(f"{provider} failed after {attempts} attempt(s): {cause}")
        self.provider = provider
        self.attempts = attempts
        self.cause = cause

    @property
    def status_code(self) -> int | None:
        return getattr(self.cause, "status_code", None)


class RetriesExhausted(ReplyGenerationError):
    pass


class ConversationNotFound(ChatRelayError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation does not exist: {conversation_id}")
        self.conversation_id = conversation_id


class StoreError(ChatRelayError):
    pass
