"""Exceptions raised by depot and certificate lifecycle operations."""


class DepotError(Exception):
    """Base exception for certificate depot operations."""


class DepotValidationError(DepotError):
    """Required option missing or malformed input (tag, PEM, SAN value)."""


class ArtifactExistsError(DepotError):
    """An artifact already exists where a new one was requested."""


class ArtifactNotFoundError(DepotError):
    """A required artifact is absent (or stored empty)."""


class SigningConstraintError(DepotError):
    """The signing certificate is not allowed to sign certificates."""


class StorageError(DepotError):
    """The underlying storage medium failed."""
