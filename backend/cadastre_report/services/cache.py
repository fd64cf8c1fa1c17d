"""
In-process caching layer for downloaded cadastre data.

Decoded commune parcel collections are kept for the lifetime of the process so
that several parcels of the same commune trigger a single download.
"""

from __future__ import annotations

from typing import Optional

_store: dict[str, dict] = {}


def _make_key(prefix: str, identifier: str) -> str:
    """Build a cache key."""
    return f"cadastre:{prefix}:{identifier}"


def cache_get(prefix: str, identifier: str) -> Optional[dict]:
    """Get a cached value. Returns None on miss."""
    return _store.get(_make_key(prefix, identifier))


def cache_set(prefix: str, identifier: str, data: dict) -> None:
    _store[_make_key(prefix, identifier)] = data


def cache_delete(prefix: str, identifier: str) -> bool:
    """Delete a cached value. Returns True if it was present."""
    return _store.pop(_make_key(prefix, identifier), None) is not None


def cache_clear() -> None:
    _store.clear()


# ──────────────────────────────────────────────────────────────────
# CONVENIENCE FUNCTIONS
# ──────────────────────────────────────────────────────────────────

def get_cached_commune_parcels(code_insee: str) -> Optional[dict]:
    return cache_get("parcelles", code_insee)


def set_cached_commune_parcels(code_insee: str, collection: dict) -> None:
    cache_set("parcelles", code_insee, collection)
