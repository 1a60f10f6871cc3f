"""
Abstract interface for expiration (TTL) tracking.

Only backends with an indexable expiration attribute implement it; callers
query for the capability with ``isinstance`` instead of checking backend
types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from loguru import logger


@dataclass
class StoredRecord:
    """
    All artifacts stored for one identity.

    Attributes:
        name: Normalized identity name
        cert: PEM-encoded certificate
        key: PEM-encoded private key
        cert_req: PEM-encoded certificate signing request
        cert_revoc_list: PEM-encoded certificate revocation list
        ttl: Recorded certificate expiration
    """

    name: str
    cert: str | None = None
    key: str | None = None
    cert_req: str | None = None
    cert_revoc_list: str | None = None
    ttl: datetime | None = None


class TTLRepository(ABC):
    """Expiration index over stored identities."""

    @abstractmethod
    def put_ttl(self, name: str, expiration: datetime) -> None:
        """
        Set the expiration of an existing identity.

        Args:
            name: Identity name
            expiration: Certificate expiration timestamp

        Raises:
            ArtifactNotFoundError: If the identity does not exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    def find_expires_before(self, cutoff: datetime) -> list[StoredRecord]:
        """
        Find all identities expiring at or before ``cutoff``.

        Returns:
            Matching records, in no particular order
        """
        pass

    @abstractmethod
    def delete_expires_before(self, cutoff: datetime) -> None:
        """Remove every identity record expiring at or before ``cutoff``."""
        pass


def record_expiration(depot: object, name: str, expiration: datetime) -> None:
    """Record ``expiration`` for ``name`` if ``depot`` tracks TTLs."""
    if not isinstance(depot, TTLRepository):
        logger.debug(f"Depot does not track expirations, skipping TTL for {name}")
        return
    depot.put_ttl(name, expiration)
