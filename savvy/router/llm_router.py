"""
LLM Router.

Dispatches conversation contexts to the active provider, caches completed
responses in a bounded FIFO cache and collapses concurrent identical
requests into one provider call. Streams are never cached.

Failures are not cached and propagate exactly as the provider raised them;
retry and backoff policy belongs to the caller.
"""

import asyncio
import dataclasses
import functools
import hashlib
import json
import logging
import math
from typing import Any, AsyncIterator, Dict, Optional

from savvy.config.settings import Settings
from savvy.providers.base import BaseProvider
from savvy.providers.registry import ProviderRegistry, create_provider_registry
from savvy.router.cache import ResponseCache
from savvy.structs import (
    CompletionOptions,
    CompletionResponse,
    ConversationContext,
    ImagePart,
)

logger = logging.getLogger("LLMRouter")


class LLMRouter:
    def __init__(
        self,
        providers: ProviderRegistry,
        provider_name: str = "openai",
        model: Optional[str] = None,
        cache: Optional[ResponseCache] = None,
        include_system_prompt_in_key: bool = False,
    ):
        self.providers = providers
        self.cache = cache if cache is not None else ResponseCache()
        self.include_system_prompt_in_key = include_system_prompt_in_key

        self._in_flight: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

        self._provider_name = ""
        self._model = ""
        self.set_provider(provider_name)
        if model:
            self.set_model(model)

    @classmethod
    def from_settings(
        cls, settings: Settings, providers: Optional[ProviderRegistry] = None
    ) -> "LLMRouter":
        return cls(
            providers or create_provider_registry(settings),
            provider_name=settings.llm_provider,
            model=settings.llm_model,
            cache=ResponseCache(settings.cache_size),
            include_system_prompt_in_key=settings.cache_include_system_prompt,
        )

    # --- Provider / model selection ---

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def model(self) -> str:
        return self._model

    @property
    def provider(self) -> BaseProvider:
        return self.providers.get(self._provider_name)

    def set_provider(self, name: str) -> None:
        """Switch provider; the active model resets to that provider's default."""
        provider = self.providers.get(name)
        self._provider_name = name
        self._model = provider.default_model
        logger.info("Switched to provider '%s' (model %s)", name, self._model)

    def set_model(self, model: str) -> None:
        self._model = model
        logger.info("Active model set to %s", model)

    def use_fallback_model(self) -> str:
        """Switch to the provider's cheaper fallback model and return it."""
        fallback = self.provider.fallback_model or self.provider.default_model
        self.set_model(fallback)
        return fallback

    # --- Caching ---

    def cache_key(
        self, context: ConversationContext, options: Optional[CompletionOptions] = None
    ) -> str:
        """
        SHA-256 over the canonical JSON of (messages, options).

        The system prompt is left out unless ``include_system_prompt_in_key``
        is set, so two contexts differing only in their system prompt share
        an entry by default.
        """
        options = options or CompletionOptions()
        payload: Dict[str, Any] = {
            "m": [
                {
                    "role": message.role,
                    "parts": [_part_to_dict(part) for part in message.parts],
                }
                for message in context.messages
            ],
            "o": options.to_dict(),
        }
        if self.include_system_prompt_in_key:
            payload["s"] = context.system_prompt

        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def clear_cache(self) -> None:
        self.cache.clear()

    # --- Dispatch ---

    async def complete(
        self, context: ConversationContext, options: Optional[CompletionOptions] = None
    ) -> CompletionResponse:
        options = options or CompletionOptions()
        key = self.cache_key(context, options)

        async with self._lock:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit %s", key[:12])
                return cached

            task = self._in_flight.get(key)
            if task is None:
                task = asyncio.ensure_future(self._dispatch_and_store(key, context, options))
                task.add_done_callback(functools.partial(self._finish_in_flight, key))
                self._in_flight[key] = task
            else:
                logger.debug("Joining in-flight request %s", key[:12])

        # Cancelling one caller leaves the shared request running for the others.
        return await asyncio.shield(task)

    async def _dispatch_and_store(
        self, key: str, context: ConversationContext, options: CompletionOptions
    ) -> CompletionResponse:
        response = await self._dispatch(context, options)
        self.cache.put(key, response)
        return response

    def _finish_in_flight(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("In-flight request %s failed: %r", key[:12], task.exception())

    async def _dispatch(
        self, context: ConversationContext, options: CompletionOptions
    ) -> CompletionResponse:
        provider = self.provider
        model = provider.resolve_model(options, self._model)
        logger.info("Dispatching completion to %s (%s)", provider.name, model)
        response = await provider.complete(context, options, model)
        logger.debug(
            "Completion from %s: %d chars, %d tokens",
            provider.name,
            len(response.text),
            response.usage.total,
        )
        return response

    async def stream(
        self, context: ConversationContext, options: Optional[CompletionOptions] = None
    ) -> AsyncIterator[str]:
        """
        Yield text fragments as they arrive.

        Closing this generator early closes the provider stream.
        """
        options = options or CompletionOptions()
        provider = self.provider
        model = provider.resolve_model(options, self._model)
        logger.info("Streaming completion from %s (%s)", provider.name, model)

        fragments = provider.stream(context, options, model)
        try:
            async for fragment in fragments:
                yield fragment
        finally:
            await fragments.aclose()

    @staticmethod
    def estimate_tokens(text: str) -> int:
        """Rough token count: one token per four characters."""
        return math.ceil(len(text or "") / 4)


def _part_to_dict(part) -> Dict[str, Any]:
    data = dataclasses.asdict(part)
    if isinstance(part, ImagePart):
        return {key: value for key, value in data.items() if value is not None}
    return data
