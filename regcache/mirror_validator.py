"""Admission validation of shoots that enable the registry-mirror extension."""

from __future__ import annotations

from .codec import DecodeError, decode_mirror_config, decode_registry_config
from .core import Shoot, find_extension
from .field import FieldError, FieldPath, invalid, required, to_aggregate
from .mirror_api import MirrorConfig
from .mirror_validation import validate_mirror_config
from .registry_api import RegistryConfig

EXTENSION_TYPE = "registry-mirror"
CACHE_EXTENSION_TYPE = "registry-cache"

NAME = "registry-mirror-validator"
"""Name of the validation webhook."""

PATH = "/webhooks/registry-config"
"""Path the validation webhook is served under."""

OBJECT_SELECTOR = {"extensions.extensions.gardener.cloud/registry-mirror": "true"}
"""Labels a shoot carries when the webhook applies to it."""


class MirrorShootValidator:
    """Validates the registry-mirror configuration of a shoot, also against its registry caches."""

    def validate(self, new_obj: object, old_obj: object | None = None) -> None:
        """Raise if the shoot's registry-mirror configuration is not valid."""
        if not isinstance(new_obj, Shoot):
            raise TypeError(f"wrong object type {type(new_obj).__name__}")

        found = find_extension(new_obj.extensions, EXTENSION_TYPE)
        if found is None:
            return None
        index, mirror_ext = found

        if any(worker.cri_name != "containerd" for worker in new_obj.workers):
            raise ValueError("container runtime needs to be containerd when the registry-mirror extension is enabled")

        provider_config_path = FieldPath("spec", "extensions").index(index).child("providerConfig")
        if mirror_ext.provider_config is None:
            raise required(provider_config_path, "providerConfig is required for the registry-mirror extension")

        try:
            mirror_config = decode_mirror_config(mirror_ext.provider_config)
        except DecodeError as exc:
            raise DecodeError(f"failed to decode providerConfig: {exc}") from exc

        errors = validate_mirror_config(mirror_config, provider_config_path)

        cache_found = find_extension(new_obj.extensions, CACHE_EXTENSION_TYPE)
        if cache_found is not None:
            _, cache_ext = cache_found
            if cache_ext.provider_config is None:
                raise ValueError("providerConfig is not available for registry-cache extension")
            try:
                cache_config = decode_registry_config(cache_ext.provider_config)
            except DecodeError as exc:
                raise DecodeError(f"failed to decode providerConfig: {exc}") from exc
            errors.extend(_validate_against_registry_cache(mirror_config, cache_config, provider_config_path))

        aggregate = to_aggregate(errors)
        if aggregate is not None:
            raise aggregate
        return None


def _validate_against_registry_cache(
    mirror_config: MirrorConfig, cache_config: RegistryConfig, fld_path: FieldPath
) -> list[FieldError]:
    upstreams = {cache.upstream for cache in cache_config.caches}
    errors: list[FieldError] = []
    for i, mirror in enumerate(mirror_config.mirrors):
        if mirror.upstream in upstreams:
            errors.append(
                invalid(
                    fld_path.child("mirrors").index(i).child("upstream"),
                    mirror.upstream,
                    f"upstream host '{mirror.upstream}' is also configured as a registry cache upstream",
                )
            )
        else:
            upstreams.add(mirror.upstream)
    return errors