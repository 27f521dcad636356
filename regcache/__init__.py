"""Registry cache and mirror configuration: models, decoding, defaulting and validation."""

__version__ = "0.1.0"