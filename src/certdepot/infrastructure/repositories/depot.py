"""
Abstract interface for certificate depots.

A depot stores PKI artifacts addressed by tags:
- Put/Get/Check/Delete of raw PEM bytes per (name, kind)
- Save/Find of paired certificate and key bundles
- One-call in-memory certificate generation from depot defaults
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from certdepot.exceptions import ArtifactExistsError, DepotValidationError
from certdepot.infrastructure.repositories.tags import Tag
from certdepot.models import Credentials, DepotOptions

if TYPE_CHECKING:
    from certdepot.services.certificate_options import CertificateOptions


class Depot(ABC):
    """
    Storage contract shared by every depot backend.

    Implementations must provide identical observable semantics for
    put/get/check/delete, except for deleting an absent artifact: backends
    document whether that is an error or a no-op.
    """

    options: DepotOptions

    @abstractmethod
    def put(self, tag: Tag, data: bytes) -> None:
        """
        Store ``data`` under ``tag``.

        Raises:
            DepotValidationError: If data is empty, not UTF-8 text or the tag
                is malformed
            ArtifactExistsError: If the backend refuses to overwrite
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def get(self, tag: Tag) -> bytes:
        """
        Read the data stored under ``tag``.

        Raises:
            ArtifactNotFoundError: If nothing (or an empty value) is stored
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    def check(self, tag: Tag) -> bool:
        """
        Whether data exists under ``tag``.

        Never raises for a missing artifact or a storage failure, only for a
        malformed tag.
        """
        pass

    @abstractmethod
    def check_with_error(self, tag: Tag) -> bool:
        """
        Whether data exists under ``tag``.

        Raises:
            StorageError: If existence could not be determined
        """
        pass

    @abstractmethod
    def delete(self, tag: Tag) -> None:
        """
        Remove the data stored under ``tag`` only.

        Raises:
            StorageError: If the removal fails
        """
        pass

    @staticmethod
    def _validate_data(data: bytes) -> str:
        """Reject empty or non-text data and return it decoded."""
        if not data:
            raise DepotValidationError("data is empty")
        try:
            return data.decode()
        except UnicodeDecodeError as e:
            raise DepotValidationError(f"data is not UTF-8 PEM text: {e}") from e

    def put_exclusive(self, tag: Tag, data: bytes) -> None:
        """
        Store ``data`` under ``tag`` only if nothing is stored there yet.

        Raises:
            ArtifactExistsError: If data already exists under the tag
        """
        self._validate_data(data)
        if self.check_with_error(tag):
            raise ArtifactExistsError(
                f"{tag.kind.name.lower()} '{tag.storage_name}' already exists"
            )
        self.put(tag, data)

    def save(self, name: str, creds: Credentials) -> None:
        """
        Replace the certificate and key of ``name`` with ``creds``.

        Not transactional: a failure part-way leaves partial state.
        """
        from certdepot.services.depot_operations import save_credentials

        save_credentials(self, name, creds)

    def find(self, name: str) -> Credentials:
        """Load the stored credentials of ``name`` with the default CA."""
        from certdepot.services.depot_operations import find_credentials

        return find_credentials(self, name, self.options)

    def generate(self, name: str) -> Credentials:
        """Issue in-memory credentials for ``name`` with depot defaults."""
        from certdepot.services.depot_operations import generate_default_credentials

        return generate_default_credentials(self, name, self.options)

    def generate_with_options(self, opts: "CertificateOptions") -> Credentials:
        """Issue in-memory credentials from ``opts`` merged with depot defaults."""
        from certdepot.services.depot_operations import generate_credentials

        return generate_credentials(self, opts.common_name, self.options, opts)
