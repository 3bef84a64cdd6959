"""
memehustle.client.api — Async REST client
==========================================

Thin httpx wrapper over the ``/api`` surface.  404 and 400 responses are
raised as the same domain errors the server uses, so client code can catch
:class:`~memehustle.errors.NotFound` without inspecting status codes.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from memehustle.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5001"


class MemeHustleClient:
    """Usage::

        async with MemeHustleClient("http://localhost:5001") as api:
            memes = await api.list_memes()
            await api.vote(memes[0]["id"], "up")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=httpx.AsyncHTTPTransport(retries=1),
        )

    async def __aenter__(self) -> MemeHustleClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = await self._client.request(method, f"/api{path}", **kwargs)
        if resp.status_code == 404:
            raise NotFound(path.split("/")[2] if path.startswith("/memes/") else path)
        if resp.status_code == 400:
            raise ValidationError(resp.json().get("error", "Invalid request"))
        resp.raise_for_status()
        return resp.json()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    async def list_memes(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/memes")

    async def get_meme(self, meme_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/memes/{meme_id}")

    async def leaderboard(self, top: int = 10) -> list[dict[str, Any]]:
        return await self._request("GET", "/leaderboard", params={"top": top})

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health")

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    async def create_meme(
        self,
        title: str,
        image_url: str | None = None,
        tags: list[str] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"title": title}
        if image_url:
            body["image_url"] = image_url
        if tags:
            body["tags"] = tags
        return await self._request("POST", "/memes", json=body)

    async def vote(self, meme_id: str, vote_type: str) -> dict[str, Any]:
        return await self._request("POST", f"/memes/{meme_id}/vote", json={"type": vote_type})

    async def bid(self, meme_id: str, credits: int) -> dict[str, Any]:
        return await self._request("POST", f"/memes/{meme_id}/bid", json={"credits": credits})

    async def regenerate_caption(self, meme_id: str) -> str:
        data = await self._request("POST", f"/memes/{meme_id}/caption")
        return data["caption"]
