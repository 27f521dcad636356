import copy
import json
from datetime import timedelta

import pytest

from regcache.codec import (
    CONFIG_API_VERSION,
    MIRROR_API_VERSION,
    REGISTRY_API_VERSION,
    DecodeError,
    decode_configuration,
    decode_mirror_config,
    decode_registry_config,
    encode_mirror_config,
    encode_registry_config,
    load_configuration,
    set_object_defaults_mirror_config,
    set_object_defaults_registry_config,
)
from regcache.config_api import Configuration
from regcache.mirror_api import MirrorConfig, MirrorConfiguration, MirrorHost, MirrorHostCapability
from regcache.registry_api import (
    HTTP,
    GarbageCollection,
    HighAvailability,
    Proxy,
    RegistryCache,
    RegistryConfig,
    Volume,
)
from regcache.units import parse_quantity


def _registry_doc(*caches):
    return json.dumps({"apiVersion": REGISTRY_API_VERSION, "kind": "RegistryConfig", "caches": list(caches)})


def _mirror_doc(*mirrors):
    return json.dumps({"apiVersion": MIRROR_API_VERSION, "kind": "MirrorConfig", "mirrors": list(mirrors)})


# Registry defaulting


def test_registry_defaults_fill_empty_cache():
    config = RegistryConfig(caches=[RegistryCache()])
    set_object_defaults_registry_config(config)
    expected = RegistryConfig(
        caches=[
            RegistryCache(
                volume=Volume(size=parse_quantity("10Gi")),
                garbage_collection=GarbageCollection(ttl=timedelta(days=7)),
                http=HTTP(tls=True),
            )
        ]
    )
    assert config == expected


def test_registry_defaults_keep_set_values():
    config = RegistryConfig(
        caches=[
            RegistryCache(
                volume=Volume(size=parse_quantity("20Gi")),
                garbage_collection=GarbageCollection(ttl=timedelta(0)),
                http=HTTP(tls=False),
            )
        ]
    )
    expected = copy.deepcopy(config)
    set_object_defaults_registry_config(config)
    assert config == expected


def test_registry_defaults_fill_size_of_existing_volume():
    config = RegistryConfig(caches=[RegistryCache(volume=Volume(storage_class_name="premium"))])
    set_object_defaults_registry_config(config)
    assert config.caches[0].volume == Volume(size=parse_quantity("10Gi"), storage_class_name="premium")


# Mirror defaulting


def test_mirror_defaults_fill_capabilities():
    config = MirrorConfig(
        mirrors=[MirrorConfiguration(upstream="docker.io", hosts=[MirrorHost(host="https://mirror.gcr.io")])]
    )
    set_object_defaults_mirror_config(config)
    expected = MirrorConfig(
        mirrors=[
            MirrorConfiguration(
                upstream="docker.io",
                hosts=[MirrorHost(host="https://mirror.gcr.io", capabilities=[MirrorHostCapability.PULL])],
            )
        ]
    )
    assert config == expected


def test_mirror_defaults_keep_set_values():
    config = MirrorConfig(
        mirrors=[
            MirrorConfiguration(
                upstream="docker.io",
                hosts=[
                    MirrorHost(
                        host="https://mirror.gcr.io",
                        capabilities=[MirrorHostCapability.PULL, MirrorHostCapability.RESOLVE],
                    )
                ],
            )
        ]
    )
    expected = copy.deepcopy(config)
    set_object_defaults_mirror_config(config)
    assert config == expected


# Registry decoding


def test_decode_registry_config_reads_all_fields():
    data = _registry_doc(
        {
            "upstream": "docker.io",
            "remoteURL": "https://registry-1.docker.io",
            "volume": {"size": "20Gi", "storageClassName": "premium"},
            "garbageCollection": {"ttl": "0s"},
            "secretReferenceName": "docker-creds",
            "proxy": {"httpProxy": "http://proxy.example.com:3128", "httpsProxy": "http://proxy.example.com:3129"},
            "http": {"tls": False},
            "highAvailability": {"enabled": True},
        }
    )
    config = decode_registry_config(data.encode())
    assert config == RegistryConfig(
        caches=[
            RegistryCache(
                upstream="docker.io",
                remote_url="https://registry-1.docker.io",
                volume=Volume(size=parse_quantity("20Gi"), storage_class_name="premium"),
                garbage_collection=GarbageCollection(ttl=timedelta(0)),
                secret_reference_name="docker-creds",
                proxy=Proxy(
                    http_proxy="http://proxy.example.com:3128",
                    https_proxy="http://proxy.example.com:3129",
                ),
                http=HTTP(tls=False),
                high_availability=HighAvailability(enabled=True),
            )
        ]
    )


def test_decode_registry_config_applies_defaults():
    config = decode_registry_config(_registry_doc({"upstream": "quay.io"}))
    cache = config.caches[0]
    assert cache.volume == Volume(size=parse_quantity("10Gi"))
    assert cache.garbage_collection == GarbageCollection(ttl=timedelta(hours=168))
    assert cache.http == HTTP(tls=True)


def test_decode_numeric_size():
    config = decode_registry_config(_registry_doc({"upstream": "quay.io", "volume": {"size": 1024}}))
    assert config.caches[0].volume.size == parse_quantity("1Ki")


def test_decode_missing_kind():
    with pytest.raises(DecodeError, match="Object 'Kind' is missing"):
        decode_registry_config(b'{"bar": "baz"}')


def test_decode_missing_api_version():
    with pytest.raises(DecodeError, match="'apiVersion' is missing"):
        decode_registry_config(b'{"kind": "RegistryConfig", "caches": []}')


def test_decode_unregistered_version():
    data = json.dumps({"apiVersion": "registry.extensions.gardener.cloud/v1alpha1", "kind": "RegistryConfig"})
    with pytest.raises(DecodeError, match="no kind \"RegistryConfig\" is registered"):
        decode_registry_config(data)


def test_decode_wrong_kind():
    data = json.dumps({"apiVersion": REGISTRY_API_VERSION, "kind": "RegistryStatus"})
    with pytest.raises(DecodeError, match="RegistryStatus"):
        decode_registry_config(data)


def test_decode_unknown_field_is_strict_error():
    with pytest.raises(DecodeError, match='unknown field "caches\\[0\\].foo"'):
        decode_registry_config(_registry_doc({"upstream": "docker.io", "foo": "bar"}))


def test_decode_duplicate_field_is_error():
    data = '{"apiVersion": "%s", "kind": "RegistryConfig", "kind": "RegistryConfig"}' % REGISTRY_API_VERSION
    with pytest.raises(DecodeError, match="duplicate field"):
        decode_registry_config(data)


def test_decode_wrong_type():
    with pytest.raises(DecodeError, match='"caches\\[0\\].upstream" of type string'):
        decode_registry_config(_registry_doc({"upstream": 5}))


def test_decode_bad_quantity():
    with pytest.raises(DecodeError, match="caches\\[0\\].volume.size"):
        decode_registry_config(_registry_doc({"upstream": "docker.io", "volume": {"size": "lots"}}))


def test_decode_bad_duration():
    with pytest.raises(DecodeError, match="garbageCollection.ttl"):
        decode_registry_config(_registry_doc({"upstream": "docker.io", "garbageCollection": {"ttl": "7 days"}}))


def test_decode_non_object_document():
    with pytest.raises(DecodeError):
        decode_registry_config(b"[1, 2]")


def test_decode_malformed_json():
    with pytest.raises(DecodeError, match="invalid JSON"):
        decode_registry_config(b"{not json")


# Registry encoding


def test_encode_minimal_registry_config():
    doc = json.loads(encode_registry_config(RegistryConfig(caches=[RegistryCache(upstream="docker.io")])))
    assert doc == {
        "apiVersion": "registry.extensions.gardener.cloud/v1alpha3",
        "kind": "RegistryConfig",
        "caches": [{"upstream": "docker.io"}],
    }


def test_encode_defaulted_cache_fields():
    config = RegistryConfig(caches=[RegistryCache(upstream="docker.io", volume=Volume(size=parse_quantity("20Gi")))])
    set_object_defaults_registry_config(config)
    doc = json.loads(encode_registry_config(config))
    cache = doc["caches"][0]
    assert cache["volume"] == {"size": "20Gi"}
    assert cache["garbageCollection"] == {"ttl": "168h0m0s"}
    assert cache["http"] == {"tls": True}


def test_registry_round_trip():
    config = RegistryConfig(
        caches=[
            RegistryCache(
                upstream="docker.io",
                remote_url="https://registry-1.docker.io",
                volume=Volume(size=parse_quantity("5Gi"), storage_class_name="standard"),
                garbage_collection=GarbageCollection(ttl=timedelta(hours=1, minutes=30)),
                secret_reference_name="creds",
                proxy=Proxy(https_proxy="http://proxy.example.com:3128"),
                http=HTTP(tls=True),
                high_availability=HighAvailability(enabled=False),
            )
        ]
    )
    assert decode_registry_config(encode_registry_config(config)) == config


# Mirror decoding and encoding


def test_decode_mirror_config_applies_defaults():
    config = decode_mirror_config(_mirror_doc({"upstream": "docker.io", "hosts": [{"host": "https://mirror.gcr.io"}]}))
    assert config == MirrorConfig(
        mirrors=[
            MirrorConfiguration(
                upstream="docker.io",
                hosts=[MirrorHost(host="https://mirror.gcr.io", capabilities=[MirrorHostCapability.PULL])],
            )
        ]
    )


def test_decode_mirror_keeps_unknown_capability():
    config = decode_mirror_config(
        _mirror_doc({"upstream": "docker.io", "hosts": [{"host": "https://mirror.gcr.io", "capabilities": ["foo"]}]})
    )
    assert config.mirrors[0].hosts[0].capabilities == ["foo"]


def test_decode_mirror_unknown_field():
    with pytest.raises(DecodeError, match='unknown field "bar"'):
        decode_mirror_config(json.dumps({"apiVersion": MIRROR_API_VERSION, "kind": "MirrorConfig", "bar": 1}))


def test_decode_mirror_wrong_capability_type():
    with pytest.raises(DecodeError, match="capabilities\\[0\\]"):
        decode_mirror_config(
            _mirror_doc({"upstream": "docker.io", "hosts": [{"host": "https://m.example.com", "capabilities": [1]}]})
        )


def test_mirror_round_trip():
    config = MirrorConfig(
        mirrors=[
            MirrorConfiguration(
                upstream="docker.io",
                hosts=[
                    MirrorHost(
                        host="https://mirror.gcr.io",
                        capabilities=[MirrorHostCapability.PULL, MirrorHostCapability.RESOLVE],
                    )
                ],
            )
        ]
    )
    encoded = encode_mirror_config(config)
    assert json.loads(encoded)["mirrors"][0]["hosts"][0]["capabilities"] == ["pull", "resolve"]
    assert decode_mirror_config(encoded) == config


# Service configuration


def test_decode_configuration_json():
    data = json.dumps({"apiVersion": CONFIG_API_VERSION, "kind": "Configuration"})
    assert decode_configuration(data) == Configuration()


def test_decode_configuration_ignores_unknown_fields():
    data = json.dumps({"apiVersion": CONFIG_API_VERSION, "kind": "Configuration", "extra": True})
    assert decode_configuration(data) == Configuration()


def test_decode_configuration_yaml():
    data = b"---\n# service configuration\napiVersion: config.registry.extensions.gardener.cloud/v1alpha1\nkind: 'Configuration'\n"
    assert decode_configuration(data) == Configuration()


def test_decode_configuration_wrong_kind():
    data = b"apiVersion: config.registry.extensions.gardener.cloud/v1alpha1\nkind: Other\n"
    with pytest.raises(DecodeError, match="Other"):
        decode_configuration(data)


def test_decode_configuration_empty():
    with pytest.raises(DecodeError, match="Kind"):
        decode_configuration(b"")


def test_load_configuration(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"apiVersion: {CONFIG_API_VERSION}\nkind: Configuration\n")
    assert load_configuration(path) == Configuration()
    assert load_configuration(str(path)) == Configuration()


def test_load_configuration_requires_location():
    with pytest.raises(ValueError, match="config location is not set"):
        load_configuration("")


def test_load_configuration_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_configuration(tmp_path / "absent.yaml")


def test_load_configuration_bad_document(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"apiVersion": "v1", "kind": "Configuration"}))
    with pytest.raises(DecodeError, match="no kind"):
        load_configuration(path)