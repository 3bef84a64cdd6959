"""
memehustle.errors — Error taxonomy
===================================

``NotFound`` and ``ValidationError`` are raised by the store and the
mutation service and mapped to HTTP 404 / 400 in :mod:`memehustle.api.main`.
``BackendUnavailable`` never leaves the component that raised it: the SQL
store and the enrichment service catch it and fall back.  Anything else
becomes a generic HTTP 500.
"""

from __future__ import annotations


class MemeHustleError(Exception):
    """Base class for all domain errors."""


class NotFound(MemeHustleError):
    """No meme with the requested id."""

    def __init__(self, meme_id: str) -> None:
        super().__init__(f"Meme not found: {meme_id}")
        self.meme_id = meme_id


class ValidationError(MemeHustleError):
    """A required request field is missing or invalid."""


class BackendUnavailable(MemeHustleError):
    """The persistent store or the text-generation provider is unreachable."""
