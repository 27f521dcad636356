# regcache

Models, defaulting, decoding and validation for registry cache and registry
mirror configuration. A registry cache holds images pulled from an upstream
registry. A registry mirror tells containerd which hosts to try in front of an
upstream.

The package has no dependencies outside the standard library.

## Install

```
pip install regcache
```

Install with the `test` extra to run the test suite:

```
pip install "regcache[test]"
pytest
```

## Modules

- `regcache.registry_api`: dataclasses `RegistryConfig`, `RegistryCache`,
  `Volume`, `GarbageCollection`, `Proxy`, `HTTP`, `HighAvailability`,
  `RegistryStatus` and `RegistryCacheStatus`, plus `DEFAULT_TTL` (7 days).
- `regcache.mirror_api`: dataclasses `MirrorConfig`, `MirrorConfiguration` and
  `MirrorHost`, and the `MirrorHostCapability` enum (`pull`, `resolve`).
- `regcache.config_api`: the service `Configuration`, which has no settings
  yet, and `validate_configuration`.
- `regcache.codec`: reading and writing versioned JSON documents.
  - `decode_registry_config` and `decode_mirror_config` decode strictly, so
    unknown or repeated fields raise `DecodeError`, and then fill in defaults.
  - `encode_registry_config` and `encode_mirror_config` write the documents.
  - `decode_configuration` takes JSON or a flat YAML mapping.
  - `load_configuration(path)` reads, decodes and validates a service
    configuration file. It raises `ValueError` when the path is empty.
  - The defaulting functions are `set_object_defaults_registry_config` and
    `set_object_defaults_mirror_config`.
- `regcache.registry_validation`:
  - `validate_registry_config` and `validate_registry_config_update`. An update
    may not change the volume size or the StorageClass name, and may not turn
    garbage collection back on once it is off.
  - `validate_upstream` and `validate_url`.
  - `validate_upstream_registry_secret`. The secret must be immutable and hold
    exactly `username` and `password`. For a `_json_key` user, the password must
    be a service-account JSON with only the allowed fields.
- `regcache.mirror_validation`: `validate_mirror_config`.
- `regcache.registry_helper`: effective settings of a cache, such as
  `garbage_collection_ttl`, `garbage_collection_enabled`, `tls_enabled`,
  `high_availability_enabled`, `volume_size`, `volume_storage_class_name` and
  `find_cache_by_upstream`.
- `regcache.core`: the `Shoot`, `Extension`, `Worker`,
  `NamedResourceReference` and `Secret` objects the validators inspect, with
  `find_extension` and `get_resource_by_name`.
- `regcache.cache_validator.CacheShootValidator` and
  `regcache.mirror_validator.MirrorShootValidator`: admission checks for a
  whole `Shoot`.
- `regcache.field`:
  - `FieldPath` builds paths.
  - `FieldError` and `ValidationErrors` are both exceptions.
  - `required`, `invalid`, `duplicate` and `not_supported` build errors.
  - `is_dns1123_subdomain` checks names.
  - `to_aggregate` bundles errors into one exception, or returns `None` when
    there are none.
- `regcache.units`: `Quantity`, `parse_quantity`, `parse_duration` and
  `format_duration`.

## Decoding and validating a configuration

```python
from regcache.codec import decode_registry_config
from regcache.field import FieldPath
from regcache.registry_validation import validate_registry_config

config = decode_registry_config(
    b'{"apiVersion": "registry.extensions.gardener.cloud/v1alpha3",'
    b' "kind": "RegistryConfig",'
    b' "caches": [{"upstream": "docker.io"}]}'
)
errors = validate_registry_config(config, FieldPath("providerConfig"))
assert errors == []
```

Decoding a registry config fills in these defaults:

- a 10Gi volume;
- a garbage-collection TTL of 168h;
- TLS enabled for the cache's HTTP server.

A mirror host that lists no capabilities gets `pull`.

Validation functions return a list of `FieldError`. Each error has `type`,
`field`, `bad_value` and `detail`, and reads like:

```
providerConfig.caches: Required value: at least one cache must be provided
```

## Validating a shoot

`MirrorShootValidator().validate(shoot)` checks the following:

- every worker uses containerd;
- the `registry-mirror` extension has a valid provider config;
- no mirrored upstream is also a registry-cache upstream.

`CacheShootValidator(get_secret)` checks the `registry-cache` extension. When an
old shoot is given, it also checks the change between the two.

Secrets are looked up through the `get_secret(namespace, name)` callable you
pass in. It must return a `Secret`. If it raises, the validator raises
`LookupError`.

```python
from regcache.cache_validator import CacheShootValidator
from regcache.core import Extension, NamedResourceReference, Secret, Shoot, Worker

provider_config = (
    b'{"apiVersion": "registry.extensions.gardener.cloud/v1alpha3",'
    b' "kind": "RegistryConfig",'
    b' "caches": [{"upstream": "docker.io", "secretReferenceName": "creds"}]}'
)
shoot = Shoot(
    name="dev",
    namespace="garden-dev",
    extensions=[Extension(type="registry-cache", provider_config=provider_config)],
    workers=[Worker(name="pool", cri_name="containerd")],
    resources=[NamedResourceReference(name="creds", kind="Secret", resource_name="docker-creds")],
)

def get_secret(namespace: str, name: str) -> Secret:
    return Secret(
        name=name,
        namespace=namespace,
        data={"username": b"user", "password": b"password"},
        immutable=True,
    )

CacheShootValidator(get_secret).validate(shoot)  # raises if something is wrong
```

A failed check raises one of these:

- a `FieldError`, when the provider config is missing;
- `ValidationErrors`, which holds several field errors;
- `DecodeError`, when the provider config cannot be decoded;
- `TypeError`, when the object is not a `Shoot`;
- `ValueError`, for example when a worker does not use containerd.

## What this package does not do

The package is a library only. It does not provide any of the following:

- a command-line tool;
- an admission webhook server;
- a controller that deploys registry caches or writes containerd host
  configuration.

It talks to no cluster API. Shoots are plain `regcache.core` objects you build,
and secrets come from the callable you hand to `CacheShootValidator`.