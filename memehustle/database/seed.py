"""
memehustle.database.seed — Demo records
========================================

The five memes every demo-mode process starts with.  Also used to populate
the SQL store's mirror when the database is unreachable at startup.
"""

from __future__ import annotations

from datetime import UTC, datetime

from memehustle.engine.records import MemeRecord

DEMO_MEMES: list[dict] = [
    {
        "id": "1",
        "title": "Doge HODL",
        "image_url": "https://picsum.photos/400/300?random=1",
        "tags": ["crypto", "funny"],
        "owner_id": "cyberpunk420",
        "upvotes": 69,
        "downvotes": 2,
        "highest_bid": 420,
        "highest_bidder": "neo_hacker",
        "caption": "Much HODL, very stonks! \U0001f680",
        "vibe": "Neon Crypto Chaos",
    },
    {
        "id": "2",
        "title": "Matrix Cat",
        "image_url": "https://picsum.photos/400/300?random=2",
        "tags": ["cat", "matrix"],
        "owner_id": "neo_hacker",
        "upvotes": 42,
        "downvotes": 1,
        "highest_bid": 300,
        "highest_bidder": "matrix_breaker",
        "caption": "I can haz red pill? \U0001f48a",
        "vibe": "Digital Rebellion",
    },
    {
        "id": "3",
        "title": "Stonks Only Go Up",
        "image_url": "https://picsum.photos/400/300?random=3",
        "tags": ["stonks", "moon"],
        "owner_id": "matrix_breaker",
        "upvotes": 128,
        "downvotes": 5,
        "highest_bid": 1000,
        "highest_bidder": "cyberpunk420",
        "caption": "Brrr goes the printer \U0001f4c8",
        "vibe": "Retro Finance Vibes",
    },
    {
        "id": "4",
        "title": "Glitch Pepe",
        "image_url": "https://picsum.photos/400/300?random=4",
        "tags": ["pepe", "glitch"],
        "owner_id": "neon_samurai",
        "upvotes": 84,
        "downvotes": 3,
        "highest_bid": 666,
        "highest_bidder": "ghost_in_shell",
        "caption": "Feels glitchy man... ⚡",
        "vibe": "Hack Energy",
    },
    {
        "id": "5",
        "title": "Cyber Shiba",
        "image_url": "https://picsum.photos/400/300?random=5",
        "tags": ["shiba", "cyberpunk"],
        "owner_id": "ghost_in_shell",
        "upvotes": 156,
        "downvotes": 7,
        "highest_bid": 777,
        "highest_bidder": "neon_samurai",
        "caption": "Such cyber, very punk! \U0001f303",
        "vibe": "Matrix Vibes",
    },
]


def demo_records(now: datetime | None = None) -> list[MemeRecord]:
    """Return fresh :class:`MemeRecord` copies of :data:`DEMO_MEMES`."""
    now = now or datetime.now(UTC)
    return [
        MemeRecord(**{**entry, "tags": list(entry["tags"])}, created_at=now)
        for entry in DEMO_MEMES
    ]
