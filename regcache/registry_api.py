"""Internal types describing registry caches and their deployed status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from .units import Quantity

GROUP_NAME = "registry.extensions.gardener.cloud"

DEFAULT_TTL = timedelta(days=7)
"""Default time to live of a blob in the cache."""


@dataclass
class Volume:
    """Settings for the registry cache volume; both fields are immutable."""

    size: Quantity | None = None
    storage_class_name: str | None = None


@dataclass
class GarbageCollection:
    """Garbage collection of cached content; a zero ttl disables it."""

    ttl: timedelta = timedelta(0)


@dataclass
class Proxy:
    """Proxy servers used by the registry cache."""

    http_proxy: str | None = None
    https_proxy: str | None = None


@dataclass
class HTTP:
    """Settings for the HTTP server that hosts the registry cache."""

    tls: bool = False


@dataclass
class HighAvailability:
    """Whether the registry cache is scaled for high availability."""

    enabled: bool = False


@dataclass
class RegistryCache:
    """A registry cache to deploy for one upstream registry."""

    upstream: str = ""
    remote_url: str | None = None
    volume: Volume | None = None
    garbage_collection: GarbageCollection | None = None
    secret_reference_name: str | None = None
    proxy: Proxy | None = None
    http: HTTP | None = None
    high_availability: HighAvailability | None = None


@dataclass
class RegistryConfig:
    """The registry caches to deploy."""

    caches: list[RegistryCache] = field(default_factory=list)


@dataclass
class RegistryCacheStatus:
    """A deployed registry cache."""

    upstream: str = ""
    endpoint: str = ""
    remote_url: str = ""


@dataclass
class RegistryStatus:
    """The deployed registry caches and the CA bundle secret, if TLS is in use."""

    ca_secret_name: str | None = None
    caches: list[RegistryCacheStatus] = field(default_factory=list)


KNOWN_TYPES = {
    "RegistryConfig": RegistryConfig,
    "RegistryStatus": RegistryStatus,
}