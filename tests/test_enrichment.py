"""
tests/test_enrichment.py — Enrichment Service
==============================================

Memoization, fallback selection and the Gemini REST provider (driven by an
``httpx.MockTransport`` — no network).
"""

from __future__ import annotations

import asyncio
import random

import httpx
import pytest
from conftest import FakeProvider, run_async

from memehustle.constants import FALLBACK_CAPTIONS, FALLBACK_VIBES, EnrichmentKind
from memehustle.services.enrichment_service import EnrichmentService, GeminiTextProvider


class _FailingProvider:
    name = "broken"

    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        raise self.exc


class _SlowProvider:
    name = "slow"

    async def generate(self, prompt: str) -> str:
        await asyncio.sleep(5)
        return "too late"


class _ValueProvider:
    name = "value"

    def __init__(self, value) -> None:
        self.value = value

    async def generate(self, prompt: str):
        return self.value


# ===========================================================================
# Memoization
# ===========================================================================
class TestMemoization:
    def test_same_key_hits_provider_once(self):
        provider = FakeProvider()
        service = EnrichmentService(provider)

        async def _inner():
            first = await service.generate("caption", "Doge", ["crypto", "funny"])
            second = await service.generate("caption", "Doge", ["crypto", "funny"])
            return first, second

        first, second = run_async(_inner())
        assert first == second == "generated #1"
        assert len(provider.calls) == 1
        assert (service.hits, service.misses) == (1, 1)

    def test_kind_title_and_tags_are_part_of_the_key(self):
        provider = FakeProvider()
        service = EnrichmentService(provider)

        async def _inner():
            return [
                await service.generate("caption", "Doge", ["crypto"]),
                await service.generate("vibe", "Doge", ["crypto"]),
                await service.generate("caption", "Doge", ["cat"]),
                await service.generate("caption", "Cat", ["crypto"]),
            ]

        results = run_async(_inner())
        assert len(set(results)) == 4
        assert service.cache_size == 4

    def test_prompt_mentions_title_and_tags(self):
        provider = FakeProvider()
        service = EnrichmentService(provider)
        run_async(service.generate(EnrichmentKind.VIBE, "Glitch Pepe", ["pepe", "glitch"]))
        assert "Glitch Pepe" in provider.calls[0]
        assert "pepe, glitch" in provider.calls[0]

    def test_quotes_stripped(self):
        service = EnrichmentService(_ValueProvider('  "Neon Stonks"  '))
        assert run_async(service.generate("vibe", "x", [])) == "Neon Stonks"


# ===========================================================================
# Fallbacks
# ===========================================================================
class TestFallback:
    def test_no_provider_uses_pool(self):
        service = EnrichmentService(None, rng=random.Random(7))
        assert run_async(service.generate("caption", "Doge", [])) in FALLBACK_CAPTIONS
        assert run_async(service.generate("vibe", "Doge", [])) in FALLBACK_VIBES
        assert service.provider_name is None

    @pytest.mark.parametrize(
        "exc",
        [RuntimeError("boom"), httpx.ConnectError("refused"), ValueError("bad payload")],
    )
    def test_provider_error_falls_back(self, exc):
        service = EnrichmentService(_FailingProvider(exc))
        assert run_async(service.generate("caption", "Doge", [])) in FALLBACK_CAPTIONS

    def test_timeout_falls_back(self):
        service = EnrichmentService(_SlowProvider(), timeout=0.05)
        assert run_async(service.generate("vibe", "Doge", [])) in FALLBACK_VIBES

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_unusable_result_falls_back(self, value):
        service = EnrichmentService(_ValueProvider(value))
        assert run_async(service.generate("caption", "Doge", [])) in FALLBACK_CAPTIONS

    def test_fallback_is_memoized(self):
        provider = _FailingProvider(RuntimeError("down"))
        service = EnrichmentService(provider)

        async def _inner():
            return [await service.generate("caption", "Doge", ["a"]) for _ in range(5)]

        results = run_async(_inner())
        assert len(set(results)) == 1
        assert provider.calls == 1

    def test_unknown_kind_rejected(self):
        service = EnrichmentService(None)
        with pytest.raises(ValueError):
            run_async(service.generate("title", "Doge", []))


# ===========================================================================
# Gemini provider
# ===========================================================================
class TestGeminiProvider:
    def _provider(self, handler) -> GeminiTextProvider:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GeminiTextProvider("test-key", "gemini-test", client=client)

    def test_parses_candidates(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "HODL "}, {"text": "forever"}]}}],
            })

        text = run_async(self._provider(handler).generate("prompt"))
        assert text == "HODL forever"
        assert seen["url"].endswith("/models/gemini-test:generateContent")
        assert seen["key"] == "test-key"

    def test_malformed_payload_raises(self):
        provider = self._provider(lambda request: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(ValueError, match="Malformed"):
            run_async(provider.generate("prompt"))

    def test_http_error_becomes_fallback(self):
        provider = self._provider(lambda request: httpx.Response(503, json={"error": "overloaded"}))
        service = EnrichmentService(provider)
        assert run_async(service.generate("caption", "Doge", [])) in FALLBACK_CAPTIONS
