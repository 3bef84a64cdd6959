"""
memehustle.services.enrichment_service — Caption & vibe generation
===================================================================

:meth:`EnrichmentService.generate` always returns a string.  The text
provider is optional; when it is missing, slow (bounded by ``timeout``),
failing, or returns nothing usable, a canned fallback is picked uniformly at
random from the pool for that kind.

Results — fallbacks included — are memoized per ``(kind, title, tags)`` for
the lifetime of the service instance, so a repeated request never reaches
the provider a second time.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Sequence
from typing import Protocol

import httpx

from memehustle.constants import FALLBACKS, EnrichmentKind

logger = logging.getLogger(__name__)

GEMINI_API = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_TIMEOUT_SECONDS = 8.0

CAPTION_PROMPT = (
    'Generate a funny, cyberpunk-style caption for a meme with title "{title}" '
    "and tags: {tags}. Make it edgy and internet culture. Max 50 characters."
)
VIBE_PROMPT = (
    'Describe the vibe/aesthetic of a meme with title "{title}" and tags: {tags}. '
    'Use cyberpunk language. Examples: "Neon Crypto Chaos", "Retro Stonks Vibes", '
    '"Matrix Glitch Energy". Max 25 characters.'
)

PROMPTS: dict[EnrichmentKind, str] = {
    EnrichmentKind.CAPTION: CAPTION_PROMPT,
    EnrichmentKind.VIBE: VIBE_PROMPT,
}


class TextProvider(Protocol):
    """Anything that turns a prompt into text."""

    name: str

    async def generate(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Gemini REST provider
# ---------------------------------------------------------------------------
class GeminiTextProvider:
    """Calls Gemini's ``generateContent`` endpoint over httpx."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        *,
        client: httpx.AsyncClient | None = None,
        request_timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=request_timeout,
            transport=httpx.AsyncHTTPTransport(retries=1),
        )

    async def generate(self, prompt: str) -> str:
        resp = await self._client.post(
            f"{GEMINI_API}/models/{self._model}:generateContent",
            headers={"x-goog-api-key": self._api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        resp.raise_for_status()
        payload = resp.json()
        try:
            parts = payload["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"Malformed Gemini response: {payload!r:.200}") from exc
        return "".join(p.get("text", "") for p in parts)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class EnrichmentService:
    """Memoizing, never-failing caption/vibe generator.

    Usage:
        enrichment = EnrichmentService(provider=None)     # fallback-only
        caption = await enrichment.generate("caption", "Doge", ["crypto"])
    """

    def __init__(
        self,
        provider: TextProvider | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        self._provider = provider
        self._timeout = timeout
        self._rng = rng or random.Random()
        self._cache: dict[tuple[str, str, str], str] = {}
        self.hits = 0
        self.misses = 0

    @property
    def provider_name(self) -> str | None:
        return self._provider.name if self._provider is not None else None

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @staticmethod
    def cache_key(kind: str, title: str, tags: Sequence[str]) -> tuple[str, str, str]:
        return (str(kind), title, "_".join(tags))

    async def generate(self, kind: str, title: str, tags: Sequence[str]) -> str:
        """Return a caption or vibe for *title* / *tags*.  Never raises."""
        kind = EnrichmentKind(kind)
        key = self.cache_key(kind, title, tags)
        cached = self._cache.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        text = await self._ask_provider(kind, title, tags)
        if not text:
            text = self._rng.choice(FALLBACKS[kind])
        # A concurrent call for the same key may have landed first; keep it.
        return self._cache.setdefault(key, text)

    async def _ask_provider(
        self, kind: EnrichmentKind, title: str, tags: Sequence[str]
    ) -> str | None:
        if self._provider is None:
            return None
        prompt = PROMPTS[kind].format(title=title, tags=", ".join(tags))
        try:
            raw = await asyncio.wait_for(self._provider.generate(prompt), self._timeout)
        except TimeoutError:
            logger.warning(
                "%s provider timed out after %.1fs — using fallback",
                kind, self._timeout,
            )
            return None
        except Exception as exc:
            logger.warning("%s provider failed (%s) — using fallback", kind, exc)
            return None
        if not isinstance(raw, str):
            logger.warning("%s provider returned %s — using fallback", kind, type(raw).__name__)
            return None
        return raw.strip().strip('"').strip() or None

    def clear(self) -> None:
        self._cache.clear()

    async def aclose(self) -> None:
        """Release the provider's HTTP client and drop memoized values."""
        closer = getattr(self._provider, "aclose", None)
        if closer is not None:
            await closer()
        self.clear()
