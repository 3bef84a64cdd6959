"""
memehustle.constants — Shared Constants
========================================

Single source of truth for record defaults and the canned enrichment text.
Import from here instead of duplicating in the store and services.
"""

from __future__ import annotations

import enum


class VoteType(enum.StrEnum):
    """Direction of a vote; each maps to exactly one counter."""
    UP = "up"
    DOWN = "down"

    @property
    def counter(self) -> str:
        return "upvotes" if self is VoteType.UP else "downvotes"


class EnrichmentKind(enum.StrEnum):
    """Fields produced asynchronously by the enrichment service."""
    CAPTION = "caption"
    VIBE = "vibe"


# Fields that ``set_field`` may write.
ENRICHABLE_FIELDS: frozenset[str] = frozenset(k.value for k in EnrichmentKind)

# ---------------------------------------------------------------------------
# Record defaults
# ---------------------------------------------------------------------------
DEFAULT_TAGS: tuple[str, ...] = ("meme", "crypto")

# Widest identity the memes/bids tables accept (owner_id, highest_bidder, user_id).
USER_ID_MAX_LENGTH = 50

IMAGE_THEMES: tuple[str, ...] = ("cat", "dog", "tech", "space", "cyberpunk")

PLACEHOLDER_IMAGE_URL = "https://picsum.photos/400/300?random={seed}&{theme}"

# ---------------------------------------------------------------------------
# Enrichment fallbacks (used when the provider is absent or fails)
# ---------------------------------------------------------------------------
FALLBACK_CAPTIONS: tuple[str, ...] = (
    "YOLO to the moon! \U0001f680",          # 🚀
    "HODL the vibes! \U0001f48e",            # 💎
    "Brrr goes stonks \U0001f4c8",           # 📈
    "Hack the planet! \U0001f480",           # 💀
    "Neural link activated ⚡",          # ⚡
    "Glitch in the matrix \U0001f534",       # 🔴
    "Vibe check: PASSED ✅",             # ✅
)

FALLBACK_VIBES: tuple[str, ...] = (
    "Neon Chaos",
    "Cyber Stonks",
    "Matrix Vibes",
    "Digital Rebellion",
    "Hack Energy",
)

FALLBACKS: dict[EnrichmentKind, tuple[str, ...]] = {
    EnrichmentKind.CAPTION: FALLBACK_CAPTIONS,
    EnrichmentKind.VIBE: FALLBACK_VIBES,
}
