"""Abstract repository interfaces for depot storage."""

from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import (
    ArtifactKind,
    Tag,
    crl_tag,
    crt_tag,
    csr_tag,
    priv_key_tag,
)
from certdepot.infrastructure.repositories.ttl import (
    StoredRecord,
    TTLRepository,
    record_expiration,
)

__all__ = [
    "ArtifactKind",
    "Depot",
    "StoredRecord",
    "TTLRepository",
    "Tag",
    "crl_tag",
    "crt_tag",
    "csr_tag",
    "priv_key_tag",
    "record_expiration",
]
