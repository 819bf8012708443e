"""Shared fixtures: a scripted in-memory provider and a router wired to it."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from savvy.config.settings import Settings
from savvy.providers.base import BaseProvider
from savvy.providers.registry import ProviderRegistry
from savvy.router.cache import ResponseCache
from savvy.router.llm_router import LLMRouter
from savvy.structs import (
    ChatMessage,
    CompletionResponse,
    ConversationContext,
    TokenUsage,
)


class FakeProvider(BaseProvider):
    """Records every request and answers from a script instead of the network."""

    name = "fake"
    default_model = "fake-large"
    fallback_model = "fake-small"
    supports_remote_image_urls = True

    def __init__(
        self,
        reply: str = "Hello world",
        fragments: Optional[List[str]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        name: Optional[str] = None,
        default_model: Optional[str] = None,
    ):
        self.reply = reply
        self.fragments = fragments if fragments is not None else ["Hello", " ", "world"]
        self.error = error
        self.delay = delay
        self.calls = 0
        self.requests: List[Dict[str, Any]] = []
        self.stream_closed = False
        if name:
            self.name = name
        if default_model:
            self.default_model = default_model

    def build_request(self, context, options, model, stream=False):
        return {
            "model": model,
            "system": context.system_prompt,
            "messages": [m.plain_text() for m in context.messages],
            "temperature": self.resolve_temperature(options),
            "stream": stream,
        }

    def parse_response(self, raw, model):
        return CompletionResponse(
            text=raw["text"],
            model=model,
            usage=TokenUsage(prompt=3, completion=2, total=5),
            finish_reason="stop",
        )

    def parse_stream_event(self, event):
        return event.get("text")

    async def _send(self, request):
        self.calls += 1
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {"text": self.reply}

    async def _send_stream(self, request):
        self.calls += 1
        self.requests.append(request)
        try:
            for fragment in self.fragments:
                yield {"text": fragment}
                await asyncio.sleep(0)
            # Bookkeeping event with no text.
            yield {"type": "done"}
        finally:
            self.stream_closed = True


def make_context(text: str = "What is two plus two?", system_prompt: Optional[str] = "Be brief.") -> ConversationContext:
    return ConversationContext(
        system_prompt=system_prompt,
        messages=[ChatMessage.text("user", text)],
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host configuration (API keys, provider choice) out of every test."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        anthropic_api_key="anthropic-test",
    )


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provider_registry(fake_provider):
    registry = ProviderRegistry()
    registry.register_instance(fake_provider)
    return registry


@pytest.fixture
def router(provider_registry):
    return LLMRouter(provider_registry, provider_name="fake", cache=ResponseCache(3))
