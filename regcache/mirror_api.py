"""Internal types describing registry mirrors."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

GROUP_NAME = "mirror.extensions.gardener.cloud"


class MirrorHostCapability(str, enum.Enum):
    """An operation a mirror host may be trusted to perform."""

    PULL = "pull"
    RESOLVE = "resolve"

    def __str__(self) -> str:
        return self.value


@dataclass
class MirrorHost:
    """A mirror host and its capabilities.

    Capabilities may hold plain strings that are not supported; validation reports them.
    """

    host: str = ""
    capabilities: list[MirrorHostCapability | str] = field(default_factory=list)


@dataclass
class MirrorConfiguration:
    """The mirror hosts to use for one upstream registry."""

    upstream: str = ""
    hosts: list[MirrorHost] = field(default_factory=list)


@dataclass
class MirrorConfig:
    """The registry mirrors to configure."""

    mirrors: list[MirrorConfiguration] = field(default_factory=list)


KNOWN_TYPES = {"MirrorConfig": MirrorConfig}