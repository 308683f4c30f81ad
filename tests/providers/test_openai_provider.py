import asyncio
import unittest
from types import SimpleNamespace

import httpx
import openai

from support_chat.errors import EmptyCompletion, MissingCredential, ProviderError
from support_chat.providers.openai_provider import GroqProvider, OpenAIProvider

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


def _status_error(cls, status: int, message: str):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


class _FakeCompletions:
    def __init__(self, outcome):
        self._outcome = outcome
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


def _make_provider(outcome, cls=OpenAIProvider, api_key: str = "sk-test"):
    completions = _FakeCompletions(outcome)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return cls(api_key, client=client), completions


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


_MESSAGES = [
    {"role": "system", "content": "sys"},
    {"role": "user", "content": "Do you ship to India?"},
]


class OpenAIProviderCompleteTests(unittest.TestCase):
    def test_complete_returns_trimmed_text(self) -> None:
        provider, completions = _make_provider(_completion("  We ship to USA and India.  \n"))
        reply = asyncio.run(provider.complete(_MESSAGES, 200, "gpt-3.5-turbo"))
        self.assertEqual("We ship to USA and India.", reply)

    def test_complete_sends_model_tokens_and_fixed_temperature(self) -> None:
        provider, completions = _make_provider(_completion("ok"))
        asyncio.run(provider.complete(_MESSAGES, 150, "gpt-4"))
        self.assertEqual(1, len(completions.calls))
        call = completions.calls[0]
        self.assertEqual("gpt-4", call["model"])
        self.assertEqual(150, call["max_tokens"])
        self.assertEqual(0.7, call["temperature"])
        self.assertEqual(_MESSAGES, call["messages"])

    def test_empty_content_raises_empty_completion(self) -> None:
        for content in (None, "", "   "):
            provider, _ = _make_provider(_completion(content))
            with self.assertRaises(EmptyCompletion):
                asyncio.run(provider.complete(_MESSAGES, 200, "m"))

    def test_no_choices_raises_empty_completion(self) -> None:
        provider, _ = _make_provider(SimpleNamespace(choices=[]))
        with self.assertRaises(EmptyCompletion):
            asyncio.run(provider.complete(_MESSAGES, 200, "m"))

    def test_rate_limit_maps_to_provider_error_with_status(self) -> None:
        provider, _ = _make_provider(_status_error(openai.RateLimitError, 429, "slow down"))
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(provider.complete(_MESSAGES, 200, "m"))
        self.assertEqual(429, ctx.exception.status_code)
        self.assertEqual("openai", ctx.exception.provider)
        self.assertIn("slow down", ctx.exception.provider_message)

    def test_unauthorized_maps_to_provider_error_with_status(self) -> None:
        provider, _ = _make_provider(_status_error(openai.AuthenticationError, 401, "bad key"))
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(provider.complete(_MESSAGES, 200, "m"))
        self.assertEqual(401, ctx.exception.status_code)

    def test_connection_error_has_no_status(self) -> None:
        provider, _ = _make_provider(openai.APIConnectionError(request=_REQUEST))
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(provider.complete(_MESSAGES, 200, "m"))
        self.assertIsNone(ctx.exception.status_code)

    def test_unparseable_response_maps_to_provider_error(self) -> None:
        error = openai.APIResponseValidationError(response=httpx.Response(200, request=_REQUEST), body="<html>")
        provider, _ = _make_provider(error)
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(provider.complete(_MESSAGES, 200, "m"))
        self.assertIsNone(ctx.exception.status_code)
        self.assertIs(error, ctx.exception.__cause__)

    def test_last_message_must_be_user(self) -> None:
        provider, completions = _make_provider(_completion("ok"))
        with self.assertRaises(ValueError):
            asyncio.run(provider.complete([{"role": "system", "content": "sys"}], 200, "m"))
        with self.assertRaises(ValueError):
            asyncio.run(provider.complete([], 200, "m"))
        self.assertEqual([], completions.calls)


class OpenAIProviderConfigTests(unittest.TestCase):
    def test_validate_config_accepts_real_key(self) -> None:
        OpenAIProvider("sk-live-123").validate_config()

    def test_validate_config_rejects_missing_blank_and_placeholder(self) -> None:
        for key in ("", "   ", "your-openai-api-key-here"):
            with self.assertRaises(MissingCredential) as ctx:
                OpenAIProvider(key).validate_config()
            self.assertEqual("OPENAI_API_KEY", ctx.exception.env_var)

    def test_groq_uses_own_name_endpoint_and_env_var(self) -> None:
        provider = GroqProvider("", env_var="GROQ_API_KEY")
        self.assertEqual("groq", provider.name)
        self.assertEqual("https://api.groq.com/openai/v1", provider.base_url)
        with self.assertRaises(MissingCredential) as ctx:
            provider.validate_config()
        self.assertEqual("GROQ_API_KEY", ctx.exception.env_var)
        self.assertEqual("groq", ctx.exception.provider)

    def test_groq_errors_carry_groq_name(self) -> None:
        provider, _ = _make_provider(_status_error(openai.RateLimitError, 429, "busy"), cls=GroqProvider)
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(provider.complete(_MESSAGES, 200, "llama-3.1-8b-instant"))
        self.assertEqual("groq", ctx.exception.provider)


if __name__ == "__main__":
    unittest.main()
