"""Configuration of the registry service and its validation."""

from __future__ import annotations

from dataclasses import dataclass

from .field import FieldError

GROUP_NAME = "config.registry.extensions.gardener.cloud"


@dataclass
class Configuration:
    """Registry service configuration; it currently holds no settings."""


KNOWN_TYPES = {"Configuration": Configuration}


def validate_configuration(config: Configuration) -> list[FieldError]:
    """Return the problems found in ``config``.

    A configuration carries no settings yet, so a well-typed one has no problems.
    """
    if not isinstance(config, Configuration):
        raise TypeError(f"expected a Configuration, got {type(config).__name__}")
    errors: list[FieldError] = []
    return errors