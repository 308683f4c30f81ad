from __future__ import annotations

from collections.abc import Sequence

from support_chat.errors import MissingCredential

PLACEHOLDER_KEYS = frozenset({
    "your-groq-api-key-here",
    "your-openai-api-key-here",
    "your-anthropic-api-key-here",
})


def ensure_credential(provider: str, api_key: str | None, env_var: str) -> None:
    if not api_key or not api_key.strip() or api_key.strip() in PLACEHOLDER_KEYS:
        raise MissingCredential(provider, env_var)


def require_user_turn(messages: Sequence[dict]) -> None:
    if not messages:
        raise ValueError("messages must not be empty")
    if messages[-1].get("role") != "user":
        raise ValueError(f"last message must have role 'user', got {messages[-1].get('role')!r}")
