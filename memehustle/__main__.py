"""
memehustle.__main__ — Entry point for ``python -m memehustle``
===============================================================

Wiring:
1. Load .env (secrets: DATABASE_URL, GEMINI_API_KEY).
2. Load config.yaml (soft settings).
3. Serve the FastAPI app with uvicorn; the app's lifespan builds the
   record store, enrichment service, leaderboard cache and broadcast hub.
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from memehustle.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("memehustle")


def main() -> None:
    """Bootstrap and run the MemeHustle API."""
    load_dotenv()
    cfg = load_config()
    logger.info(
        "Starting %s on port %d (%s store, %s enrichment)",
        cfg.app_name,
        cfg.port,
        "live" if cfg.live_store else "demo",
        "live" if cfg.live_enrichment else "fallback",
    )

    from memehustle.api.main import create_app

    uvicorn.run(create_app(cfg), host="0.0.0.0", port=cfg.port, log_config=None)


if __name__ == "__main__":
    main()
