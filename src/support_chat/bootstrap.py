from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from support_chat.app_config import AppConfig, RuntimeEnv, sqlite_path_from_url
from support_chat.logging_config import setup_logging
from support_chat.memory import ConversationStore, MemoryStore
from support_chat.provider import ChatProvider, create_provider
from support_chat.reply_generator import ReplyGenerator, SleepFn


@dataclass
class AppRuntime:
    config: AppConfig
    memory_store: MemoryStore
    conversations: ConversationStore
    reply_generator: ReplyGenerator
    log_descriptions: list[str]

    def close(self) -> None:
        self.memory_store.close()


def open_memory_store(database_url: str) -> MemoryStore:
    db_path = sqlite_path_from_url(database_url)
    if db_path != ":memory:" and not Path(db_path).is_absolute():
        db_path = str(Path.cwd() / db_path)
    return MemoryStore(db_path)


def bootstrap_runtime(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    provider: ChatProvider | None = None,
    sleep: SleepFn = asyncio.sleep,
    configure_logging: bool = True,
) -> AppRuntime:
    """Wire config, store, provider and reply generator together once at startup."""
    log_descriptions: list[str] = []
    if configure_logging:
        log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    if provider is None:
        provider = create_provider(app.provider, env)

    memory_store = open_memory_store(app.database_url)
    logger.info(
        f"Runtime ready: provider={provider.name}, "
        f"model={app.provider.model_for(provider.name).default}, "
        f"context={app.provider.max_context_messages} messages, max_tokens={app.provider.max_tokens}, "
        f"db={memory_store.db_path}"
    )

    return AppRuntime(
        config=app,
        memory_store=memory_store,
        conversations=ConversationStore(memory_store),
        reply_generator=ReplyGenerator(app.provider, provider, sleep=sleep),
        log_descriptions=log_descriptions,
    )
