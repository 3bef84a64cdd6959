"""
memehustle.api.routes.memes — Meme REST endpoints
==================================================

Thin adapters over :class:`MemeService`.  Domain errors raised by the
service (``NotFound``, ``ValidationError``) are turned into 404 / 400 by the
exception handlers registered in :mod:`memehustle.api.main`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, StrictInt

from memehustle.api.deps import get_service
from memehustle.services.meme_service import MemeService

router = APIRouter(tags=["memes"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
# Fields are optional here so that a missing value reaches the service and
# comes back as a uniform 400, not a framework 422.
class MemeCreate(BaseModel):
    title: str | None = None
    image_url: str | None = None
    tags: list[str] | None = None


class VoteRequest(BaseModel):
    type: str | None = None


class BidRequest(BaseModel):
    credits: StrictInt | None = None


# ---------------------------------------------------------------------------
# GET /memes
# ---------------------------------------------------------------------------
@router.get("/memes")
async def list_memes(service: MemeService = Depends(get_service)):
    """All memes, newest first."""
    return [r.to_dict() for r in await service.list_memes()]


@router.post("/memes", status_code=status.HTTP_201_CREATED)
async def create_meme(body: MemeCreate, service: MemeService = Depends(get_service)):
    """Create a meme; caption and vibe arrive later via ``meme_updated``."""
    record = await service.create_meme(body.title, body.image_url, body.tags)
    return record.to_dict()


@router.get("/memes/{meme_id}")
async def get_meme(meme_id: str, service: MemeService = Depends(get_service)):
    record = await service.get_meme(meme_id)
    return record.to_dict()


# ---------------------------------------------------------------------------
# Votes & bids
# ---------------------------------------------------------------------------
@router.post("/memes/{meme_id}/vote")
async def vote(meme_id: str, body: VoteRequest, service: MemeService = Depends(get_service)):
    return await service.vote(meme_id, body.type)


@router.post("/memes/{meme_id}/bid")
async def bid(meme_id: str, body: BidRequest, service: MemeService = Depends(get_service)):
    accepted = await service.bid(meme_id, body.credits)
    return accepted.to_dict()


@router.get("/memes/{meme_id}/bids")
async def list_bids(meme_id: str, service: MemeService = Depends(get_service)):
    """Bid history for one meme, oldest first."""
    return [b.to_dict() for b in await service.list_bids(meme_id)]


# ---------------------------------------------------------------------------
# Caption regeneration
# ---------------------------------------------------------------------------
@router.post("/memes/{meme_id}/caption")
async def regenerate_caption(meme_id: str, service: MemeService = Depends(get_service)):
    caption = await service.regenerate_caption(meme_id)
    return {"caption": caption}


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
async def leaderboard(
    top: int | None = Query(None),
    service: MemeService = Depends(get_service),
):
    """Top memes by upvotes (``top`` defaults to 10)."""
    return [r.to_dict() for r in await service.leaderboard(top)]
