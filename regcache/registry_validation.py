"""Validation of registry cache configurations and upstream registry secrets."""

from __future__ import annotations

import json
import re
from datetime import timedelta
from typing import Any

from .core import Secret
from .field import FieldError, FieldPath, duplicate, invalid, is_dns1123_subdomain, required
from .registry_api import RegistryCache, RegistryConfig
from .registry_helper import (
    find_cache_by_upstream,
    garbage_collection_enabled,
    volume_size,
    volume_storage_class_name,
)
from .units import Quantity, format_duration

USERNAME_KEY = "username"
PASSWORD_KEY = "password"

FIELD_IMMUTABLE_MESSAGE = "field is immutable"

_DIGITS_RE = re.compile(r"[0-9]+")
_PORT_RE = re.compile(
    r"([1-9][0-9]{0,3}|[1-5][0-9]{4}|6[0-4][0-9]{3}|65[0-4][0-9]{2}|655[0-2][0-9]|6553[0-5])"
)

SERVICE_ACCOUNT_ALLOWED_FIELDS = frozenset(
    {
        "type",
        "project_id",
        "client_email",
        "universe_domain",
        "auth_uri",
        "auth_provider_x509_cert_url",
        "client_x509_cert_url",
        "client_id",
        "private_key_id",
        "private_key",
        "token_uri",
    }
)

# Characters Python treats as whitespace but the registry's credential rules do not.
_NOT_SPACE = frozenset("\x1c\x1d\x1e\x1f")


def validate_registry_config(config: RegistryConfig, fld_path: FieldPath) -> list[FieldError]:
    """Return the problems found in a registry cache configuration."""
    errors: list[FieldError] = []
    caches_path = fld_path.child("caches")

    if not config.caches:
        errors.append(required(caches_path, "at least one cache must be provided"))

    upstreams: set[str] = set()
    for i, cache in enumerate(config.caches):
        cache_path = caches_path.index(i)
        errors.extend(_validate_registry_cache(cache, cache_path))
        if cache.upstream in upstreams:
            errors.append(duplicate(cache_path.child("upstream"), cache.upstream))
        else:
            upstreams.add(cache.upstream)

    return errors


def validate_registry_config_update(
    old_config: RegistryConfig, new_config: RegistryConfig, fld_path: FieldPath
) -> list[FieldError]:
    """Return the problems in changing ``old_config`` into ``new_config``."""
    errors: list[FieldError] = []

    for i, new_cache in enumerate(new_config.caches):
        old_cache = find_cache_by_upstream(old_config.caches, new_cache.upstream)
        if old_cache is None:
            continue
        cache_path = fld_path.child("caches").index(i)

        new_size = volume_size(new_cache)
        if volume_size(old_cache) != new_size:
            shown = str(new_size) if new_size is not None else "<nil>"
            errors.append(invalid(cache_path.child("volume", "size"), shown, FIELD_IMMUTABLE_MESSAGE))

        new_class = volume_storage_class_name(new_cache)
        if new_class != volume_storage_class_name(old_cache):
            errors.append(
                invalid(cache_path.child("volume", "storageClassName"), new_class, FIELD_IMMUTABLE_MESSAGE)
            )

        # Once switched off, garbage collection may not be switched back on.
        if not garbage_collection_enabled(old_cache) and garbage_collection_enabled(new_cache):
            errors.append(
                invalid(
                    cache_path.child("garbageCollection", "ttl"),
                    new_cache.garbage_collection,
                    "garbage collection cannot be enabled (ttl > 0) once it is disabled (ttl = 0)",
                )
            )

    return errors


def _validate_registry_cache(cache: RegistryCache, fld_path: FieldPath) -> list[FieldError]:
    errors = validate_upstream(fld_path.child("upstream"), cache.upstream)

    if cache.remote_url is not None:
        errors.extend(validate_url(fld_path.child("remoteURL"), cache.remote_url))

    if cache.volume is not None:
        if cache.volume.size is not None:
            errors.extend(_validate_positive_quantity(cache.volume.size, fld_path.child("volume", "size")))
        name = cache.volume.storage_class_name
        if name is not None:
            errors.extend(
                invalid(fld_path.child("volume", "storageClassName"), name, msg)
                for msg in is_dns1123_subdomain(name)
            )

    if cache.garbage_collection is not None:
        ttl = cache.garbage_collection.ttl
        if ttl < timedelta(0):
            errors.append(
                invalid(
                    fld_path.child("garbageCollection", "ttl"),
                    format_duration(ttl),
                    "ttl must be a non-negative duration",
                )
            )

    if cache.proxy is not None:
        if cache.proxy.http_proxy is not None:
            errors.extend(validate_url(fld_path.child("proxy", "httpProxy"), cache.proxy.http_proxy))
        if cache.proxy.https_proxy is not None:
            errors.extend(validate_url(fld_path.child("proxy", "httpsProxy"), cache.proxy.https_proxy))

    return errors


def validate_upstream(fld_path: FieldPath, upstream: str) -> list[FieldError]:
    """Check that ``upstream`` is a DNS subdomain (RFC 1123), optionally with a port."""
    return [invalid(fld_path, upstream, msg) for msg in _host_port_errors(upstream)]


def validate_url(fld_path: FieldPath, url: str) -> list[FieldError]:
    """Check that ``url`` has the form ``<http|https>://<host>[:<port>]``."""
    errors: list[FieldError] = []
    scheme, sep, rest = url.partition("://")
    host = rest if sep else url
    if not sep:
        scheme = ""
    if scheme not in ("https", "http"):
        errors.append(invalid(fld_path, url, "url must start with 'http://' or 'https://' scheme"))
    errors.extend(invalid(fld_path, url, msg) for msg in _host_port_errors(host))
    return errors


def _host_port_errors(host_port: str) -> list[str]:
    errors: list[str] = []
    host = host_port
    head, sep, port = host_port.rpartition(":")
    if sep and _DIGITS_RE.fullmatch(port):
        host = head
        if not _PORT_RE.fullmatch(port):
            errors.append(f"port '{port}' is not valid, valid port must be in the range [1, 65535]")
    errors.extend(is_dns1123_subdomain(host))
    return errors


def _validate_positive_quantity(value: Quantity, fld_path: FieldPath) -> list[FieldError]:
    if value <= Quantity():
        return [invalid(fld_path, str(value), "must be greater than 0")]
    return []


def _is_space(ch: str) -> bool:
    return ch.isspace() and ch not in _NOT_SPACE


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def validate_upstream_registry_secret(
    secret: Secret, fld_path: FieldPath, secret_reference_name: str
) -> list[FieldError]:
    """Check that a credentials secret is immutable and holds exactly a username and a password."""
    errors: list[FieldError] = []
    object_key = "/".join((secret.namespace, secret.name))

    def problem(detail: str) -> None:
        errors.append(invalid(fld_path, secret_reference_name, detail))

    if not secret.immutable:
        problem(f'referenced secret "{object_key}" should be immutable')
    if len(secret.data) != 2:
        problem(f'referenced secret "{object_key}" should have only two data entries')

    if USERNAME_KEY in secret.data:
        username = _text(secret.data[USERNAME_KEY])
        if all(_is_space(ch) for ch in username):
            problem(f'data entry "{USERNAME_KEY}" in referenced secret "{object_key}" is empty')
        if any(_is_space(ch) for ch in username):
            problem(f'data entry "{USERNAME_KEY}" in referenced secret "{object_key}" contains whitespace')
    else:
        problem(f'missing "{USERNAME_KEY}" data entry in referenced secret "{object_key}"')

    if PASSWORD_KEY in secret.data:
        if all(_is_space(ch) for ch in _text(secret.data[PASSWORD_KEY])):
            problem(f'data entry "{PASSWORD_KEY}" in referenced secret "{object_key}" is empty')
    else:
        problem(f'missing "{PASSWORD_KEY}" data entry in referenced secret "{object_key}"')

    if secret.data.get(USERNAME_KEY) == b"_json_key" and PASSWORD_KEY in secret.data:
        errors.extend(
            _validate_service_account_json(
                secret.data[PASSWORD_KEY], fld_path, secret_reference_name, object_key
            )
        )

    return errors


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


def _validate_service_account_json(
    raw: bytes, fld_path: FieldPath, secret_reference_name: str, object_key: str
) -> list[FieldError]:
    errors: list[FieldError] = []
    fields: list[str] = []
    problem: str | None = None

    try:
        document = json.loads(raw)
    except ValueError as exc:
        problem = str(exc)
    else:
        if isinstance(document, dict):
            fields = list(document)
            # A null value leaves the entry empty; any other non-string is a type error.
            wrong = next(
                (key for key, value in document.items() if value is not None and not isinstance(value, str)),
                None,
            )
            if wrong is not None:
                problem = f"cannot unmarshal {_json_kind(document[wrong])} into string value of field {wrong!r}"
        else:
            problem = f"cannot unmarshal {_json_kind(document)} into map of strings"

    if problem is not None:
        errors.append(
            invalid(
                fld_path,
                secret_reference_name,
                "failed to unmarshal ServiceAccount json from password data entry in referenced secret "
                f'"{object_key}": {problem}',
            )
        )

    for name in fields:
        if name not in SERVICE_ACCOUNT_ALLOWED_FIELDS:
            errors.append(
                invalid(
                    fld_path,
                    secret_reference_name,
                    f'forbidden ServiceAccount field "{name}" present in password data entry '
                    f'in referenced secret "{object_key}"',
                )
            )

    return errors