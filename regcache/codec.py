"""Reading and writing the versioned documents of the registry, mirror and service APIs.

Registry and mirror documents are decoded strictly: unknown or repeated fields are
errors. Decoding fills in the defaults of the versioned API before returning the
internal objects.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any, TypeVar

from . import config_api, mirror_api, registry_api
from .config_api import Configuration, validate_configuration
from .field import to_aggregate
from .mirror_api import MirrorConfig, MirrorConfiguration, MirrorHost, MirrorHostCapability
from .registry_api import (
    DEFAULT_TTL,
    HTTP,
    GarbageCollection,
    HighAvailability,
    Proxy,
    RegistryCache,
    RegistryConfig,
    Volume,
)
from .units import Quantity, format_duration, parse_duration, parse_quantity

REGISTRY_API_VERSION = f"{registry_api.GROUP_NAME}/v1alpha3"
MIRROR_API_VERSION = f"{mirror_api.GROUP_NAME}/v1alpha1"
CONFIG_API_VERSION = f"{config_api.GROUP_NAME}/v1alpha1"

DEFAULT_VOLUME_SIZE = "10Gi"

T = TypeVar("T")


class DecodeError(ValueError):
    """A document cannot be decoded into an API object."""


# ---------------------------------------------------------------------------
# Defaulting


def _default_volume(volume: Volume) -> None:
    if volume.size is None:
        volume.size = parse_quantity(DEFAULT_VOLUME_SIZE)


def _default_registry_cache(cache: RegistryCache) -> None:
    if cache.volume is None:
        cache.volume = Volume()
    if cache.garbage_collection is None:
        cache.garbage_collection = GarbageCollection(ttl=DEFAULT_TTL)
    if cache.http is None:
        cache.http = HTTP(tls=True)


def set_object_defaults_registry_config(config: RegistryConfig) -> None:
    """Fill in the defaults of every cache in ``config``, in place."""
    for cache in config.caches:
        _default_registry_cache(cache)
        if cache.volume is not None:
            _default_volume(cache.volume)


def set_object_defaults_mirror_config(config: MirrorConfig) -> None:
    """Give every mirror host without capabilities the ``pull`` capability, in place."""
    for mirror in config.mirrors:
        for host in mirror.hosts:
            if not host.capabilities:
                host.capabilities = [MirrorHostCapability.PULL]


# ---------------------------------------------------------------------------
# Reading JSON documents


def _kind_of(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


def _reject_constant(name: str) -> Any:
    raise DecodeError(f"invalid JSON value {name}")


def _text_of(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"document is not valid UTF-8: {exc}") from exc


def _load_json(text: str, strict: bool) -> Any:
    def pairs(items: list[tuple[str, Any]]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in items:
            if strict and key in result:
                raise DecodeError(f'strict decoding error: duplicate field "{key}"')
            result[key] = value
        return result

    try:
        return json.loads(text, object_pairs_hook=pairs, parse_constant=_reject_constant)
    except DecodeError:
        raise
    except ValueError as exc:
        raise DecodeError(f"invalid JSON document: {exc}") from exc


_YAML_LINE_RE = re.compile(r"([A-Za-z0-9_.-]+):(?:\s+(.*))?")
_YAML_SCALARS = {"true": True, "false": False, "null": None, "~": None}


def _load_flat_yaml(text: str) -> dict[str, Any]:
    """Read a YAML document that is a single mapping of scalar values."""
    result: dict[str, Any] = {}
    for number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or stripped == "---":
            continue
        match = _YAML_LINE_RE.fullmatch(line.rstrip())
        if match is None:
            raise DecodeError(f"unsupported document content on line {number}: {line!r}")
        key, raw = match.group(1), (match.group(2) or "").strip()
        if " #" in raw and not raw.startswith(("'", '"')):
            raw = raw.split(" #", 1)[0].rstrip()
        if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"":
            value: Any = raw[1:-1]
        elif raw == "":
            value = None
        else:
            value = _YAML_SCALARS.get(raw, raw)
        result[key] = value
    return result


class _Reader:
    """Shared state while decoding one document."""

    def __init__(self, strict: bool) -> None:
        self.strict = strict
        self.unknown: list[str] = []


class _Object:
    """A JSON object being read field by field."""

    def __init__(self, reader: _Reader, value: Any, path: str) -> None:
        if not isinstance(value, dict):
            where = f'"{path}"' if path else "document"
            raise DecodeError(f"cannot decode {_kind_of(value)} into {where} of type object")
        self._reader = reader
        self._value: dict[str, Any] = value
        self._path = path
        self._seen: set[str] = set()

    def _path_of(self, name: str) -> str:
        return f"{self._path}.{name}" if self._path else name

    def _take(self, name: str) -> Any:
        self._seen.add(name)
        return self._value.get(name)

    def _type_error(self, name: str, value: Any, expected: str) -> DecodeError:
        return DecodeError(
            f'cannot decode {_kind_of(value)} into field "{self._path_of(name)}" of type {expected}'
        )

    def string(self, name: str) -> str | None:
        value = self._take(name)
        if value is None or isinstance(value, str):
            return value
        raise self._type_error(name, value, "string")

    def boolean(self, name: str) -> bool:
        value = self._take(name)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        raise self._type_error(name, value, "bool")

    def quantity(self, name: str) -> Quantity | None:
        value = self._take(name)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise self._type_error(name, value, "quantity")
        try:
            return parse_quantity(str(value))
        except ValueError as exc:
            raise DecodeError(f'field "{self._path_of(name)}": {exc}') from exc

    def duration(self, name: str) -> timedelta:
        value = self._take(name)
        if value is None:
            return timedelta(0)
        if not isinstance(value, str):
            raise self._type_error(name, value, "duration")
        try:
            return parse_duration(value)
        except ValueError as exc:
            raise DecodeError(f'field "{self._path_of(name)}": {exc}') from exc

    def strings(self, name: str) -> list[str]:
        value = self._take(name)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self._type_error(name, value, "array")
        for i, item in enumerate(value):
            if not isinstance(item, str):
                raise DecodeError(
                    f'cannot decode {_kind_of(item)} into field "{self._path_of(name)}[{i}]" of type string'
                )
        return list(value)

    def nested(self, name: str, build: Callable[[_Object], T]) -> T | None:
        value = self._take(name)
        if value is None:
            return None
        child = _Object(self._reader, value, self._path_of(name))
        result = build(child)
        child.close()
        return result

    def each(self, name: str, build: Callable[[_Object], T]) -> list[T]:
        value = self._take(name)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self._type_error(name, value, "array")
        results: list[T] = []
        for i, item in enumerate(value):
            child = _Object(self._reader, item, f"{self._path_of(name)}[{i}]")
            results.append(build(child))
            child.close()
        return results

    def close(self) -> None:
        if self._reader.strict:
            self._reader.unknown.extend(self._path_of(key) for key in self._value if key not in self._seen)


def _decode(
    document: Any,
    text: str,
    api_version: str,
    kind: str,
    strict: bool,
    build: Callable[[_Object], T],
) -> T:
    reader = _Reader(strict)
    root = _Object(reader, document, "")
    found_version = root.string("apiVersion")
    found_kind = root.string("kind")
    if not found_kind:
        raise DecodeError(f"Object 'Kind' is missing in '{text}'")
    if not found_version:
        raise DecodeError(f"Object 'apiVersion' is missing in '{text}'")
    if found_version != api_version:
        raise DecodeError(f'no kind "{found_kind}" is registered for version "{found_version}"')
    if found_kind != kind:
        raise DecodeError(f'unable to decode kind "{found_kind}" as "{kind}"')
    result = build(root)
    root.close()
    if reader.unknown:
        raise DecodeError(
            "strict decoding error: " + ", ".join(f'unknown field "{name}"' for name in reader.unknown)
        )
    return result


# ---------------------------------------------------------------------------
# Registry documents


def _read_volume(obj: _Object) -> Volume:
    return Volume(size=obj.quantity("size"), storage_class_name=obj.string("storageClassName"))


def _read_garbage_collection(obj: _Object) -> GarbageCollection:
    return GarbageCollection(ttl=obj.duration("ttl"))


def _read_proxy(obj: _Object) -> Proxy:
    return Proxy(http_proxy=obj.string("httpProxy"), https_proxy=obj.string("httpsProxy"))


def _read_http(obj: _Object) -> HTTP:
    return HTTP(tls=obj.boolean("tls"))


def _read_high_availability(obj: _Object) -> HighAvailability:
    return HighAvailability(enabled=obj.boolean("enabled"))


def _read_registry_cache(obj: _Object) -> RegistryCache:
    return RegistryCache(
        upstream=obj.string("upstream") or "",
        remote_url=obj.string("remoteURL"),
        volume=obj.nested("volume", _read_volume),
        garbage_collection=obj.nested("garbageCollection", _read_garbage_collection),
        secret_reference_name=obj.string("secretReferenceName"),
        proxy=obj.nested("proxy", _read_proxy),
        http=obj.nested("http", _read_http),
        high_availability=obj.nested("highAvailability", _read_high_availability),
    )


def _read_registry_config(obj: _Object) -> RegistryConfig:
    return RegistryConfig(caches=obj.each("caches", _read_registry_cache))


def decode_registry_config(data: bytes | str) -> RegistryConfig:
    """Decode a ``RegistryConfig`` document strictly and fill in its defaults."""
    text = _text_of(data)
    config = _decode(
        _load_json(text, strict=True), text, REGISTRY_API_VERSION, "RegistryConfig", True, _read_registry_config
    )
    set_object_defaults_registry_config(config)
    return config


def _registry_cache_document(cache: RegistryCache) -> dict[str, Any]:
    doc: dict[str, Any] = {"upstream": cache.upstream}
    if cache.remote_url is not None:
        doc["remoteURL"] = cache.remote_url
    if cache.volume is not None:
        volume: dict[str, Any] = {}
        if cache.volume.size is not None:
            volume["size"] = str(cache.volume.size)
        if cache.volume.storage_class_name is not None:
            volume["storageClassName"] = cache.volume.storage_class_name
        doc["volume"] = volume
    if cache.garbage_collection is not None:
        doc["garbageCollection"] = {"ttl": format_duration(cache.garbage_collection.ttl)}
    if cache.secret_reference_name is not None:
        doc["secretReferenceName"] = cache.secret_reference_name
    if cache.proxy is not None:
        proxy: dict[str, Any] = {}
        if cache.proxy.http_proxy is not None:
            proxy["httpProxy"] = cache.proxy.http_proxy
        if cache.proxy.https_proxy is not None:
            proxy["httpsProxy"] = cache.proxy.https_proxy
        doc["proxy"] = proxy
    if cache.http is not None:
        doc["http"] = {"tls": cache.http.tls}
    if cache.high_availability is not None:
        doc["highAvailability"] = {"enabled": True} if cache.high_availability.enabled else {}
    return doc


def _dump(document: dict[str, Any]) -> bytes:
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def encode_registry_config(config: RegistryConfig) -> bytes:
    """Write ``config`` as a versioned JSON document."""
    return _dump(
        {
            "apiVersion": REGISTRY_API_VERSION,
            "kind": "RegistryConfig",
            "caches": [_registry_cache_document(cache) for cache in config.caches],
        }
    )


# ---------------------------------------------------------------------------
# Mirror documents


def _capability(name: str) -> MirrorHostCapability | str:
    try:
        return MirrorHostCapability(name)
    except ValueError:
        return name


def _read_mirror_host(obj: _Object) -> MirrorHost:
    return MirrorHost(
        host=obj.string("host") or "",
        capabilities=[_capability(name) for name in obj.strings("capabilities")],
    )


def _read_mirror_configuration(obj: _Object) -> MirrorConfiguration:
    return MirrorConfiguration(upstream=obj.string("upstream") or "", hosts=obj.each("hosts", _read_mirror_host))


def _read_mirror_config(obj: _Object) -> MirrorConfig:
    return MirrorConfig(mirrors=obj.each("mirrors", _read_mirror_configuration))


def decode_mirror_config(data: bytes | str) -> MirrorConfig:
    """Decode a ``MirrorConfig`` document strictly and fill in its defaults."""
    text = _text_of(data)
    config = _decode(
        _load_json(text, strict=True), text, MIRROR_API_VERSION, "MirrorConfig", True, _read_mirror_config
    )
    set_object_defaults_mirror_config(config)
    return config


def encode_mirror_config(config: MirrorConfig) -> bytes:
    """Write ``config`` as a versioned JSON document."""
    return _dump(
        {
            "apiVersion": MIRROR_API_VERSION,
            "kind": "MirrorConfig",
            "mirrors": [
                {
                    "upstream": mirror.upstream,
                    "hosts": [
                        {"host": host.host, "capabilities": [str(c) for c in host.capabilities]}
                        for host in mirror.hosts
                    ],
                }
                for mirror in config.mirrors
            ],
        }
    )


# ---------------------------------------------------------------------------
# Service configuration


def decode_configuration(data: bytes | str) -> Configuration:
    """Decode a service ``Configuration`` given as JSON or as a flat YAML mapping."""
    text = _text_of(data)
    try:
        document = _load_json(text, strict=False)
    except DecodeError:
        document = _load_flat_yaml(text)
    return _decode(document, text, CONFIG_API_VERSION, "Configuration", False, lambda _obj: Configuration())


def load_configuration(path: str | os.PathLike[str]) -> Configuration:
    """Read, decode and validate the service configuration file at ``path``."""
    if path is None or os.fspath(path) == "":
        raise ValueError("config location is not set")
    config = decode_configuration(Path(path).read_bytes())
    aggregate = to_aggregate(validate_configuration(config))
    if aggregate is not None:
        raise aggregate
    return config