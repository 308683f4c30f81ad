from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from support_chat.errors import UnsupportedProvider

SUPPORTED_PROVIDERS: tuple[str, ...] = ("groq", "openai", "anthropic")

PROVIDER_ENV_VARS: Mapping[str, str] = MappingProxyType({
    "groq": "GROQ_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
})


@dataclass(frozen=True)
class ModelPair:
    default: str
    alternative: str


DEFAULT_MODELS: Mapping[str, ModelPair] = MappingProxyType({
    "groq": ModelPair("llama-3.1-8b-instant", "llama-3.1-70b-versatile"),
    "openai": ModelPair("gpt-3.5-turbo", "gpt-4"),
    "anthropic": ModelPair("claude-3-5-haiku-latest", "claude-sonnet-4-5-20250929"),
})


@dataclass(frozen=True)
class ProviderConfig:
    """Cost-control limits and model table for the active LLM backend."""

    provider_name: str = "groq"
    max_context_messages: int = 10
    max_tokens: int = 200
    temperature: float = 0.7
    models: Mapping[str, ModelPair] = field(default_factory=lambda: DEFAULT_MODELS)

    def model_for(self, provider_name: str) -> ModelPair:
        pair = self.models.get(provider_name)
        if pair is None:
            raise UnsupportedProvider(provider_name, tuple(self.models))
        return pair


@dataclass(frozen=True)
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str


@dataclass(frozen=True)
class AppConfig:
    provider: ProviderConfig
    host: str
    port: int
    database_url: str
    cors_origin: str
    chat_rate_limit: str
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def parse_app_config(config: dict, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Merge config.json values with the environment; the environment wins."""
    env = os.environ if environ is None else environ

    provider = ProviderConfig(
        provider_name=(env.get("LLM_PROVIDER") or config.get("Provider", "groq")).strip().lower(),
        max_context_messages=max(0, int(config.get("MaxContextMessages", 10))),
        max_tokens=int(config.get("MaxTokens", 200)),
    )
    return AppConfig(
        provider=provider,
        host=env.get("HOST") or config.get("Host", "0.0.0.0"),
        port=int(env.get("PORT") or config.get("Port", 3001)),
        database_url=env.get("DATABASE_URL") or config.get("DatabaseUrl", "sqlite:///data/chat.db"),
        cors_origin=env.get("CORS_ORIGIN") or config.get("CorsOrigin", "*"),
        chat_rate_limit=config.get("ChatRateLimit", "10/minute"),
        log_level=env.get("LOG_LEVEL") or config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str, environ: Mapping[str, str] | None = None) -> RuntimeEnv:
    env = os.environ if environ is None else environ
    env_var = PROVIDER_ENV_VARS.get(provider_name, f"{provider_name.upper()}_API_KEY")
    return RuntimeEnv(
        provider_api_key=env.get(env_var, ""),
        provider_env_var=env_var,
    )


def sqlite_path_from_url(database_url: str) -> str:
    """Accept ``sqlite:///relative``, ``sqlite:////absolute`` or a bare path."""
    prefix = "sqlite:///"
    if database_url.startswith(prefix):
        return database_url[len(prefix):]
    if "://" in database_url:
        raise ValueError(f"Only sqlite databases are supported, got: {database_url!r}")
    return database_url
