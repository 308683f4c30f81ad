from support_chat.memory.conversations import ConversationStore
from support_chat.memory.models import Conversation, Message
from support_chat.memory.store import MemoryStore

__all__ = [
    "Conversation",
    "ConversationStore",
    "MemoryStore",
    "Message",
]
