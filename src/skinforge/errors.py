"""Errors raised by SkinForge processing steps and config loading."""


class InfluenceLimitError(ValueError):
    """Base class for influence limiting failures."""


class InvalidConfigurationError(InfluenceLimitError):
    """A processing parameter is out of range (e.g. max influences <= 0)."""


class MalformedMeshError(InfluenceLimitError):
    """The mesh violates a structural precondition (e.g. out-of-range vertex id)."""
