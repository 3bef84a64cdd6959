"""
memehustle.config — YAML Configuration Loader
==============================================

**Why this file exists:**
Secrets and connection strings (``DATABASE_URL``, ``GEMINI_API_KEY``) live
in the environment / ``.env``.  Everything else that an operator might want
to tune (leaderboard TTL, enrichment timeout, the mock user pool) lives in
an optional ``config.yaml``.  A missing file is not an error: the demo must
boot with zero setup, so every key has a default.

Usage::

    from memehustle.config import load_config

    cfg = load_config()                  # reads $MEMEHUSTLE_CONFIG or ./config.yaml
    print(cfg.leaderboard_ttl_seconds)   # 30.0
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from memehustle.constants import USER_ID_MAX_LENGTH

logger = logging.getLogger(__name__)

# Values shipped in .env.example — treated as "not configured".
_PLACEHOLDER_VALUES = frozenset({
    "",
    "your-supabase-project-url",
    "your-database-url",
    "your-gemini-api-key",
})

DEFAULT_USER_POOL: tuple[str, ...] = (
    "cyberpunk420",
    "neo_hacker",
    "matrix_breaker",
    "neon_samurai",
    "ghost_in_shell",
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MemeHustleConfig:
    """Immutable configuration loaded from ``config.yaml`` + environment."""

    app_name: str = "MemeHustle"
    port: int = 5001

    # Leaderboard
    leaderboard_ttl_seconds: float = 30.0
    leaderboard_default_size: int = 10

    # Enrichment
    enrichment_timeout_seconds: float = 8.0
    gemini_model: str = "gemini-1.5-flash"

    # Broadcast
    subscriber_queue_size: int = 100

    # Demo store
    seed_demo_data: bool = True
    user_pool: tuple[str, ...] = DEFAULT_USER_POOL

    # Environment-sourced (secrets / connection strings)
    database_url: str | None = field(default=None, repr=False)
    gemini_api_key: str | None = field(default=None, repr=False)

    @property
    def live_store(self) -> bool:
        """True when a real database URL is configured."""
        return self.database_url is not None

    @property
    def live_enrichment(self) -> bool:
        """True when a text-generation API key is configured."""
        return self.gemini_api_key is not None


def _env_secret(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    if value in _PLACEHOLDER_VALUES:
        return None
    return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> MemeHustleConfig:
    """Read *path* (if it exists) and the environment into a config object.

    Parameters
    ----------
    path:
        YAML file to read.  Defaults to ``$MEMEHUSTLE_CONFIG`` and then
        ``config.yaml`` in the current working directory.

    Raises
    ------
    ValueError
        If the YAML document is not a mapping, a numeric key is out of range,
        or a user_pool entry is empty or too long.
    """
    if path is None:
        path = os.getenv("MEMEHUSTLE_CONFIG", "config.yaml")
    config_path = Path(path)

    raw: dict = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file must be a mapping: {config_path}")
        logger.info("Config loaded from %s", config_path)
    else:
        logger.info("No config file at %s — using defaults", config_path)

    defaults = MemeHustleConfig()
    user_pool = tuple(raw.get("user_pool") or defaults.user_pool)
    if not user_pool:
        raise ValueError("user_pool must contain at least one identity")
    for identity in user_pool:
        if not isinstance(identity, str) or not identity.strip():
            raise ValueError(f"user_pool entries must be non-empty strings: {identity!r}")
        if len(identity) > USER_ID_MAX_LENGTH:
            raise ValueError(
                f"user_pool entry longer than {USER_ID_MAX_LENGTH} characters: {identity!r}"
            )

    ttl = float(raw.get("leaderboard_ttl_seconds", defaults.leaderboard_ttl_seconds))
    timeout = float(raw.get("enrichment_timeout_seconds", defaults.enrichment_timeout_seconds))
    if ttl < 0 or timeout <= 0:
        raise ValueError("leaderboard_ttl_seconds must be >= 0 and enrichment_timeout_seconds > 0")

    top_size = int(raw.get("leaderboard_default_size", defaults.leaderboard_default_size))
    queue_size = int(raw.get("subscriber_queue_size", defaults.subscriber_queue_size))
    # asyncio.Queue(maxsize=0) would be unbounded.
    if top_size < 1 or queue_size < 1:
        raise ValueError("leaderboard_default_size and subscriber_queue_size must be >= 1")

    return MemeHustleConfig(
        app_name=raw.get("app_name", defaults.app_name),
        port=int(raw.get("port", os.getenv("PORT", defaults.port))),
        leaderboard_ttl_seconds=ttl,
        leaderboard_default_size=top_size,
        enrichment_timeout_seconds=timeout,
        gemini_model=raw.get("gemini_model", defaults.gemini_model),
        subscriber_queue_size=queue_size,
        seed_demo_data=bool(raw.get("seed_demo_data", defaults.seed_demo_data)),
        user_pool=user_pool,
        database_url=_env_secret("DATABASE_URL"),
        gemini_api_key=_env_secret("GEMINI_API_KEY"),
    )
