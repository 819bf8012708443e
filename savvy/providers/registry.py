#!/usr/bin/env python3
"""
Provider Registry
=================
Maps provider names to factories and caches the created instances.
Adding a provider means registering a factory; the router never changes.
"""

import logging
from typing import Callable, Dict, List

from savvy.config.settings import Settings
from savvy.exceptions import ProviderError, ProviderNotAvailableError
from savvy.providers.base import BaseProvider

ProviderFactory = Callable[[], BaseProvider]


class ProviderRegistry:
    """
    Holds provider factories and lazily builds one instance per name.

    Created by the composition root and injected into the router.
    """

    def __init__(self):
        self._factories: Dict[str, ProviderFactory] = {}
        self._instances: Dict[str, BaseProvider] = {}
        self.logger = logging.getLogger("ProviderRegistry")

    def register_provider(self, name: str, factory: ProviderFactory) -> None:
        """
        Register a provider factory under ``name``.

        Re-registering drops any instance built by the previous factory.
        """
        if not callable(factory):
            raise ProviderError(
                f"Provider factory for '{name}' must be callable",
                details={"provider_name": name, "factory": repr(factory)},
            )
        self._factories[name] = factory
        self._instances.pop(name, None)
        self.logger.info("Registered provider: %s", name)

    def register_instance(self, provider: BaseProvider) -> None:
        """Register an already-built provider under its own name."""
        self._factories[provider.name] = lambda: provider
        self._instances[provider.name] = provider
        self.logger.info("Registered provider instance: %s", provider.name)

    def get(self, name: str) -> BaseProvider:
        if name in self._instances:
            return self._instances[name]

        factory = self._factories.get(name)
        if factory is None:
            raise ProviderNotAvailableError(
                f"Provider '{name}' is not registered. Available providers: {self.names()}",
                provider_name=name,
                details={"requested_provider": name, "available_providers": self.names()},
            )

        provider = factory()
        if not isinstance(provider, BaseProvider):
            raise ProviderError(
                f"Factory for '{name}' returned {type(provider).__name__}, not a BaseProvider",
                provider_name=name,
            )
        self._instances[name] = provider
        return provider

    def names(self) -> List[str]:
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    async def close(self) -> None:
        """Close every provider that was instantiated."""
        for name, provider in list(self._instances.items()):
            self.logger.debug("Closing provider: %s", name)
            await provider.close()
        self._instances.clear()


def create_provider_registry(settings: Settings) -> ProviderRegistry:
    """Registry with the built-in providers, instantiated on first use."""
    # SDK imports are deferred to first use.
    def openai_factory() -> BaseProvider:
        from savvy.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(settings)

    def anthropic_factory() -> BaseProvider:
        from savvy.providers.anthropic_provider import AnthropicProvider

        return AnthropicProvider(settings)

    def ollama_factory() -> BaseProvider:
        from savvy.providers.ollama_provider import OllamaProvider

        return OllamaProvider(settings)

    registry = ProviderRegistry()
    registry.register_provider("openai", openai_factory)
    registry.register_provider("anthropic", anthropic_factory)
    registry.register_provider("ollama", ollama_factory)
    return registry
