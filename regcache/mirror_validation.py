"""Validation of registry mirror configurations."""

from __future__ import annotations

from .field import FieldError, FieldPath, duplicate, not_supported, required
from .mirror_api import MirrorConfig, MirrorConfiguration, MirrorHostCapability
from .registry_validation import validate_upstream, validate_url

SUPPORTED_CAPABILITIES = frozenset(capability.value for capability in MirrorHostCapability)


def validate_mirror_config(mirror_config: MirrorConfig, fld_path: FieldPath) -> list[FieldError]:
    """Return the problems found in a registry mirror configuration."""
    errors: list[FieldError] = []
    mirrors_path = fld_path.child("mirrors")

    if not mirror_config.mirrors:
        errors.append(required(mirrors_path, "at least one mirror must be provided"))

    upstreams: set[str] = set()
    for i, mirror in enumerate(mirror_config.mirrors):
        mirror_path = mirrors_path.index(i)
        errors.extend(_validate_mirror_configuration(mirror, mirror_path))
        if mirror.upstream in upstreams:
            errors.append(duplicate(mirror_path.child("upstream"), mirror.upstream))
        else:
            upstreams.add(mirror.upstream)

    return errors


def _validate_mirror_configuration(mirror: MirrorConfiguration, fld_path: FieldPath) -> list[FieldError]:
    errors = validate_upstream(fld_path.child("upstream"), mirror.upstream)

    if not mirror.hosts:
        errors.append(required(fld_path.child("hosts"), "at least one host must be provided"))

    hosts: set[str] = set()
    for i, host in enumerate(mirror.hosts):
        host_path = fld_path.child("hosts").index(i)
        errors.extend(validate_url(host_path.child("host"), host.host))
        if host.host in hosts:
            errors.append(duplicate(host_path.child("host"), host.host))
        else:
            hosts.add(host.host)
        errors.extend(_validate_capabilities(host_path.child("capabilities"), host.capabilities))

    return errors


def _validate_capabilities(
    fld_path: FieldPath, capabilities: list[MirrorHostCapability | str]
) -> list[FieldError]:
    errors: list[FieldError] = []
    found: set[str] = set()
    for i, capability in enumerate(capabilities):
        name = str(capability)
        if name not in SUPPORTED_CAPABILITIES:
            errors.append(not_supported(fld_path, name, sorted(SUPPORTED_CAPABILITIES)))
        if name in found:
            errors.append(duplicate(fld_path.index(i), name))
        else:
            found.add(name)
    return errors