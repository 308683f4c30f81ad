from __future__ import annotations

from support_chat.errors import MissingCredential, UnsupportedProvider
from support_chat.system_prompt import SUPPORT_EMAIL

CONFIGURATION_REPLY = (
    "Our assistant isn't set up to answer right now. "
    f"Please contact our support team at {SUPPORT_EMAIL} and we'll be glad to help."
)
AUTHENTICATION_REPLY = (
    "Our assistant can't connect to its answering service at the moment. "
    f"Please contact our support team at {SUPPORT_EMAIL} for help."
)
OVERLOADED_REPLY = "I'm experiencing high traffic right now. Please wait a moment and try again."
GENERIC_REPLY = (
    "I'm sorry, I'm having trouble processing your request right now. Please try again in a moment, "
    "or contact our support team for immediate assistance."
)
RATE_LIMITED_REPLY = "I'm receiving too many messages right now. Please wait a moment and try again."
STORE_FAILURE_REPLY = "I'm experiencing some technical difficulties. Please try again later."


def fallback_reply_for(exc: Exception) -> tuple[str, str]:
    """Return ``(cause, reply)`` for a failed reply generation."""
    if isinstance(exc, (MissingCredential, UnsupportedProvider)):
        return "configuration", CONFIGURATION_REPLY
    status = getattr(exc, "status_code", None)
    if status == 401:
        return "authentication", AUTHENTICATION_REPLY
    if status == 429:
        return "overloaded", OVERLOADED_REPLY
    return "generic", GENERIC_REPLY
