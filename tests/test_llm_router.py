"""Tests for LLM routing: caching, de-duplication, streaming and provider switching."""

import asyncio

import pytest

from conftest import FakeProvider, make_context
from savvy.exceptions import (
    ProviderConnectionError,
    ProviderNotAvailableError,
    ProviderRateLimitError,
)
from savvy.providers.registry import ProviderRegistry
from savvy.router.cache import ResponseCache
from savvy.router.llm_router import LLMRouter
from savvy.structs import CompletionOptions


@pytest.mark.asyncio
async def test_cache_hit_skips_the_provider(router, fake_provider):
    context = make_context()

    first = await router.complete(context)
    second = await router.complete(make_context())

    assert first.text == "Hello world"
    assert second is first
    assert fake_provider.calls == 1


@pytest.mark.asyncio
async def test_different_options_are_cached_separately(router, fake_provider):
    context = make_context()

    await router.complete(context, CompletionOptions(temperature=0.1))
    await router.complete(context, CompletionOptions(temperature=0.9))

    assert fake_provider.calls == 2
    assert [r["temperature"] for r in fake_provider.requests] == [0.1, 0.9]


@pytest.mark.asyncio
async def test_default_options_use_provider_defaults(router, fake_provider):
    response = await router.complete(make_context())

    assert response.model == "fake-large"
    assert fake_provider.requests[0]["temperature"] == 0.3
    assert fake_provider.requests[0]["system"] == "Be brief."


@pytest.mark.asyncio
async def test_fifo_eviction_ignores_reads(router, fake_provider):
    # Cache holds three entries.
    for text in ("a", "b", "c"):
        await router.complete(make_context(text))
    assert fake_provider.calls == 3

    # Reading "a" does not protect it.
    await router.complete(make_context("a"))
    assert fake_provider.calls == 3

    await router.complete(make_context("d"))
    assert len(router.cache) == 3

    await router.complete(make_context("a"))
    assert fake_provider.calls == 5

    # "b" was next in line once "a" came back.
    await router.complete(make_context("c"))
    assert fake_provider.calls == 5
    await router.complete(make_context("b"))
    assert fake_provider.calls == 6


@pytest.mark.asyncio
async def test_concurrent_identical_requests_share_one_call(router, fake_provider):
    fake_provider.delay = 0.05
    context = make_context()

    results = await asyncio.gather(*(router.complete(context) for _ in range(5)))

    assert fake_provider.calls == 1
    assert all(r is results[0] for r in results)


@pytest.mark.asyncio
async def test_failures_are_not_cached(router, fake_provider):
    fake_provider.error = ProviderRateLimitError(
        "slow down", provider_name="fake", retry_after=2
    )

    with pytest.raises(ProviderRateLimitError) as exc_info:
        await router.complete(make_context())
    assert exc_info.value.retry_after == 2
    assert len(router.cache) == 0

    fake_provider.error = None
    response = await router.complete(make_context())

    assert response.text == "Hello world"
    assert fake_provider.calls == 2


@pytest.mark.asyncio
async def test_concurrent_waiters_see_the_same_failure(router, fake_provider):
    fake_provider.delay = 0.05
    fake_provider.error = ProviderConnectionError("down", provider_name="fake")
    context = make_context()

    results = await asyncio.gather(
        router.complete(context), router.complete(context), return_exceptions=True
    )

    assert fake_provider.calls == 1
    assert all(isinstance(r, ProviderConnectionError) for r in results)
    assert router._in_flight == {}


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_the_shared_request(router, fake_provider):
    fake_provider.delay = 0.05
    context = make_context()

    first = asyncio.create_task(router.complete(context))
    second = asyncio.create_task(router.complete(context))
    await asyncio.sleep(0.01)
    first.cancel()

    response = await second

    assert first.cancelled()
    assert response.text == "Hello world"
    assert fake_provider.calls == 1
    assert router._in_flight == {}


@pytest.mark.asyncio
async def test_request_finishes_and_caches_after_its_only_caller_leaves(router, fake_provider):
    fake_provider.delay = 0.02
    context = make_context()

    caller = asyncio.create_task(router.complete(context))
    await asyncio.sleep(0.005)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    await asyncio.sleep(0.05)
    response = await router.complete(context)

    assert response.text == "Hello world"
    assert fake_provider.calls == 1


@pytest.mark.asyncio
async def test_stream_concatenation_matches_complete(router, fake_provider):
    context = make_context()

    fragments = [f async for f in router.stream(context)]
    response = await router.complete(context)

    assert fragments == ["Hello", " ", "world"]
    assert "".join(fragments) == response.text
    assert fake_provider.stream_closed


@pytest.mark.asyncio
async def test_streams_are_never_cached(router, fake_provider):
    context = make_context()

    [f async for f in router.stream(context)]
    [f async for f in router.stream(context)]

    assert fake_provider.calls == 2
    assert len(router.cache) == 0


@pytest.mark.asyncio
async def test_abandoned_stream_closes_provider_stream(router, fake_provider):
    stream = router.stream(make_context())

    first = await stream.__anext__()
    await stream.aclose()

    assert first == "Hello"
    assert fake_provider.stream_closed


@pytest.mark.asyncio
async def test_system_prompt_is_excluded_from_key_by_default(router, fake_provider):
    first = await router.complete(make_context(system_prompt="You are a pirate."))
    second = await router.complete(make_context(system_prompt="You are a lawyer."))

    # Known collision: same messages and options share a cache entry.
    assert second is first
    assert fake_provider.calls == 1


@pytest.mark.asyncio
async def test_system_prompt_can_be_part_of_the_key(provider_registry, fake_provider):
    router = LLMRouter(provider_registry, provider_name="fake", include_system_prompt_in_key=True)

    await router.complete(make_context(system_prompt="You are a pirate."))
    await router.complete(make_context(system_prompt="You are a lawyer."))

    assert fake_provider.calls == 2


def test_cache_key_is_stable_and_content_sensitive(router):
    assert router.cache_key(make_context("x")) == router.cache_key(make_context("x"))
    assert router.cache_key(make_context("x")) != router.cache_key(make_context("y"))
    assert router.cache_key(make_context("x")) != router.cache_key(
        make_context("x"), CompletionOptions(max_tokens=10)
    )


def test_set_provider_resets_model(provider_registry):
    other = FakeProvider(name="other", default_model="other-default")
    provider_registry.register_instance(other)
    router = LLMRouter(provider_registry, provider_name="fake")

    router.set_model("custom-model")
    router.set_provider("other")

    assert router.provider_name == "other"
    assert router.model == "other-default"


def test_fallback_model(router):
    assert router.use_fallback_model() == "fake-small"
    assert router.model == "fake-small"


def test_unknown_provider_is_rejected(router):
    with pytest.raises(ProviderNotAvailableError):
        router.set_provider("nope")
    assert router.provider_name == "fake"


@pytest.mark.asyncio
async def test_option_model_overrides_active_model(router, fake_provider):
    response = await router.complete(make_context(), CompletionOptions(model="pinned"))

    assert response.model == "pinned"
    assert router.model == "fake-large"


def test_from_settings_uses_configured_provider_and_cache(settings):
    registry = ProviderRegistry()
    registry.register_instance(FakeProvider(name="openai", default_model="gpt-test"))
    settings.cache_size = 7

    router = LLMRouter.from_settings(settings, registry)

    assert router.provider_name == "openai"
    assert router.model == "gpt-test"
    assert router.cache.max_size == 7


@pytest.mark.parametrize("text, tokens", [("", 0), ("abc", 1), ("abcd", 1), ("abcde", 2)])
def test_estimate_tokens(text, tokens):
    assert LLMRouter.estimate_tokens(text) == tokens


def test_response_cache_rejects_zero_size():
    with pytest.raises(ValueError):
        ResponseCache(0)


def test_response_cache_overwrite_keeps_slot():
    cache = ResponseCache(2)
    cache.put("a", "first")
    cache.put("b", "second")
    cache.put("a", "updated")
    cache.put("c", "third")

    assert cache.keys() == ["b", "c"]
    assert cache.get("a") is None
    assert cache.hits == 0 and cache.misses == 1
