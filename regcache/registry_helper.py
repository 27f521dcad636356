"""Helpers that read effective settings from a registry cache."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from .registry_api import DEFAULT_TTL, RegistryCache
from .units import Quantity


def garbage_collection_ttl(cache: RegistryCache) -> timedelta:
    """Return the blob time to live, falling back to the default."""
    if cache.garbage_collection is None:
        return DEFAULT_TTL
    return cache.garbage_collection.ttl


def garbage_collection_enabled(cache: RegistryCache) -> bool:
    """Return whether garbage collection is on (ttl > 0)."""
    return garbage_collection_ttl(cache) > timedelta(0)


def find_cache_by_upstream(caches: Iterable[RegistryCache] | None, upstream: str) -> RegistryCache | None:
    """Return the first cache for ``upstream``, or None."""
    return next((cache for cache in caches or () if cache.upstream == upstream), None)


def volume_size(cache: RegistryCache) -> Quantity | None:
    """Return the configured volume size, if any."""
    return cache.volume.size if cache.volume is not None else None


def volume_storage_class_name(cache: RegistryCache) -> str | None:
    """Return the configured volume StorageClass name, if any."""
    return cache.volume.storage_class_name if cache.volume is not None else None


def tls_enabled(cache: RegistryCache) -> bool:
    """Return whether TLS is on for the cache's HTTP server; on unless switched off."""
    return cache.http is None or cache.http.tls


def high_availability_enabled(cache: RegistryCache) -> bool:
    """Return whether high availability is switched on."""
    return cache.high_availability is not None and cache.high_availability.enabled