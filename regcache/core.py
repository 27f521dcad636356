"""Shoot cluster objects that the admission validators inspect."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass
class Extension:
    """An extension enabled on a shoot, with its raw provider configuration."""

    type: str = ""
    provider_config: bytes | None = None


@dataclass
class Worker:
    """A worker pool and the container runtime it uses."""

    name: str = ""
    cri_name: str | None = None


@dataclass
class NamedResourceReference:
    """A named reference from a shoot to another resource."""

    name: str = ""
    kind: str = ""
    resource_name: str = ""
    api_version: str = "v1"


@dataclass
class Shoot:
    """The parts of a shoot cluster specification the validators need."""

    name: str = ""
    namespace: str = ""
    extensions: list[Extension] = field(default_factory=list)
    workers: list[Worker] = field(default_factory=list)
    resources: list[NamedResourceReference] = field(default_factory=list)


@dataclass
class Secret:
    """A secret holding binary data entries."""

    name: str = ""
    namespace: str = ""
    data: dict[str, bytes] = field(default_factory=dict)
    immutable: bool | None = None


def find_extension(
    extensions: Iterable[Extension] | None, extension_type: str
) -> tuple[int, Extension] | None:
    """Return the index and the first extension of the given type, or None."""
    for i, ext in enumerate(extensions or ()):
        if ext.type == extension_type:
            return i, ext
    return None


def get_resource_by_name(
    resources: Iterable[NamedResourceReference] | None, name: str
) -> NamedResourceReference | None:
    """Return the first resource reference with the given name, or None."""
    return next((ref for ref in resources or () if ref.name == name), None)