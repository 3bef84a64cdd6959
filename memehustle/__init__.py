"""
MemeHustle — Real-time meme marketplace
========================================
Users post memes, vote, bid credits and watch a live leaderboard.  The
server keeps the authoritative meme collection and pushes every change to
all connected clients so their views converge without a refresh.

Package layout::

    memehustle/
    ├── config.py          # YAML + env → typed config
    ├── constants.py       # Defaults, vote/enrichment enums, fallback text
    ├── errors.py          # NotFound / ValidationError / BackendUnavailable
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + run_db async bridge
    │   ├── models.py      # memes + bids tables
    │   └── seed.py        # Demo records
    ├── engine/
    │   ├── records.py     # MemeRecord / BidRecord value objects
    │   ├── events.py      # Broadcast event envelope
    │   └── cache.py       # Leaderboard TTL cache
    ├── services/
    │   ├── record_store.py       # Store interface + in-memory store
    │   ├── sql_store.py          # SQL store with in-memory fallback
    │   ├── enrichment_service.py # Caption/vibe generation + memo
    │   ├── broadcast.py          # Subscriber fan-out
    │   └── meme_service.py       # Mutation API
    ├── api/
    │   ├── main.py        # FastAPI app factory
    │   ├── deps.py        # Component wiring
    │   └── routes/        # REST + WebSocket endpoints
    └── client/
        ├── api.py         # httpx REST client
        └── view.py        # Local view reconciled from broadcasts
"""

__version__ = "0.1.0"
