"""Admission validation of shoots that enable the registry-cache extension."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .codec import DecodeError, decode_registry_config
from .core import NamedResourceReference, Secret, Shoot, find_extension, get_resource_by_name
from .field import FieldError, FieldPath, invalid, required, to_aggregate
from .registry_api import RegistryConfig
from .registry_validation import (
    validate_registry_config,
    validate_registry_config_update,
    validate_upstream_registry_secret,
)

EXTENSION_TYPE = "registry-cache"

NAME = "registry-cache-validator"
"""Name of the validation webhook."""

PATH = "/webhooks/registry-cache"
"""Path the validation webhook is served under."""

OBJECT_SELECTOR = {"extensions.extensions.gardener.cloud/registry-cache": "true"}
"""Labels a shoot carries when the webhook applies to it."""

SecretGetter = Callable[[str, str], Secret]
"""Reads a secret by namespace and name; raises if it cannot be read."""


def _decode_provider_config(raw: bytes) -> RegistryConfig:
    try:
        return decode_registry_config(raw)
    except DecodeError as exc:
        raise DecodeError(f"failed to decode providerConfig: {exc}") from exc


class CacheShootValidator:
    """Validates the registry-cache configuration of a shoot and the secrets it references."""

    def __init__(self, get_secret: SecretGetter) -> None:
        self._get_secret = get_secret

    def validate(self, new_obj: object, old_obj: object | None = None) -> None:
        """Raise if the shoot's registry-cache configuration, or its change from ``old_obj``, is not valid."""
        if not isinstance(new_obj, Shoot):
            raise TypeError(f"wrong object type {type(new_obj).__name__}")

        found = find_extension(new_obj.extensions, EXTENSION_TYPE)
        if found is None:
            return None
        index, ext = found

        if any(worker.cri_name != "containerd" for worker in new_obj.workers):
            raise ValueError("container runtime needs to be containerd when the registry-cache extension is enabled")

        provider_config_path = FieldPath("spec", "extensions").index(index).child("providerConfig")
        if ext.provider_config is None:
            raise required(provider_config_path, "providerConfig is required for the registry-cache extension")

        config = _decode_provider_config(ext.provider_config)
        errors: list[FieldError] = []

        if old_obj is not None:
            if not isinstance(old_obj, Shoot):
                raise TypeError(f"wrong object type {type(old_obj).__name__} for old object")
            old_found = find_extension(old_obj.extensions, EXTENSION_TYPE)
            if old_found is not None:
                _, old_ext = old_found
                if old_ext.provider_config is None:
                    raise ValueError("providerConfig is not available on old Shoot")
                old_config = _decode_provider_config(old_ext.provider_config)
                if config == old_config:
                    return None
                errors.extend(validate_registry_config_update(old_config, config, provider_config_path))

        errors.extend(validate_registry_config(config, provider_config_path))
        errors.extend(
            self._validate_registry_credentials(
                config, provider_config_path, new_obj.resources, new_obj.namespace
            )
        )

        aggregate = to_aggregate(errors)
        if aggregate is not None:
            raise aggregate
        return None

    def _validate_registry_credentials(
        self,
        config: RegistryConfig,
        fld_path: FieldPath,
        resources: Iterable[NamedResourceReference],
        namespace: str,
    ) -> list[FieldError]:
        errors: list[FieldError] = []
        resources = list(resources)

        for i, cache in enumerate(config.caches):
            reference_name = cache.secret_reference_name
            if reference_name is None:
                continue
            ref_path = fld_path.child("caches").index(i).child("secretReferenceName")

            ref = get_resource_by_name(resources, reference_name)
            if ref is None or ref.kind != "Secret":
                errors.append(
                    invalid(
                        ref_path,
                        reference_name,
                        f"failed to find referenced resource with name {reference_name} and kind Secret",
                    )
                )
                continue

            try:
                secret = self._get_secret(namespace, ref.resource_name)
            except Exception as exc:
                raise LookupError(
                    f"failed to get secret {namespace}/{ref.resource_name} "
                    f"for secretReferenceName {reference_name}: {exc}"
                ) from exc

            errors.extend(validate_upstream_registry_secret(secret, ref_path, reference_name))

        return errors