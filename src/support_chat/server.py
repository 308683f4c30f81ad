from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from support_chat.bootstrap import AppRuntime
from support_chat.errors import ChatRelayError, StoreError
from support_chat.fallbacks import RATE_LIMITED_REPLY, STORE_FAILURE_REPLY, fallback_reply_for

MAX_MESSAGE_CHARS = 1000
MAX_SESSION_ID_CHARS = 128


class ChatMessageRequest(BaseModel):
    # Loosely typed so validation failures map to 400 with a readable error.
    message: Any = None
    sessionId: Any = None


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": error})


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests, please try again later.",
            "reply": RATE_LIMITED_REPLY,
        },
        headers={"Retry-After": "60"},
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _bad_request("Request body must be a JSON object")


def create_app(runtime: AppRuntime) -> FastAPI:
    config = runtime.config
    conversations = runtime.conversations
    generator = runtime.reply_generator

    app = FastAPI(title="Support Chat Relay", version="1.0.0")

    limiter = Limiter(key_func=get_remote_address)
    app.state.limiter = limiter
    app.state.runtime = runtime
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    origins = [o.strip() for o in config.cors_origin.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/chat/history/{session_id}")
    async def chat_history(session_id: str):
        try:
            messages = conversations.history(session_id)
        except StoreError as exc:
            logger.error(f"Error fetching chat history: {exc}")
            return JSONResponse(status_code=500, content={"error": "Failed to fetch chat history"})

        return {
            "messages": [
                {"sender": m.sender, "text": m.text, "timestamp": m.created_at}
                for m in messages
            ]
        }

    @app.post("/chat/message")
    @limiter.limit(config.chat_rate_limit)
    async def chat_message(request: Request, body: ChatMessageRequest):
        message = body.message
        if not isinstance(message, str) or not message.strip():
            return _bad_request("Message cannot be empty")
        if len(message) > MAX_MESSAGE_CHARS:
            return _bad_request(f"Message is too long (max {MAX_MESSAGE_CHARS} characters)")

        session_id = body.sessionId
        if session_id is not None and (
            not isinstance(session_id, str) or len(session_id) > MAX_SESSION_ID_CHARS
        ):
            return _bad_request("Session ID is malformed")

        text = message.strip()
        try:
            conversation = conversations.get_or_create(session_id or None)
            with logger.contextualize(session=conversation.id):
                history = [m.as_turn() for m in conversation.messages]
                conversations.append(conversation.id, "user", text)

                try:
                    reply = await generator.generate_reply(history, text)
                except ChatRelayError as exc:
                    cause, reply = fallback_reply_for(exc)
                    logger.error(f"Reply generation failed ({cause}): {exc}")

                conversations.append(conversation.id, "assistant", reply)
        except StoreError as exc:
            logger.error(f"Error processing chat message: {exc}")
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to process message", "reply": STORE_FAILURE_REPLY},
            )

        return {"reply": reply, "sessionId": conversation.id}

    return app
