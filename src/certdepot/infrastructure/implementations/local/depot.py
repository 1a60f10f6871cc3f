"""
Local file-based depot implementation.

Stores one PEM file per artifact in a single directory:
    {base_dir}/
        {name}.crt
        {name}.key
        {name}.csr
        {name}.crl

Files are created exclusively and never overwritten in place. An empty
file reads as absent, so put replaces it, and a failed write removes the
file it created.
"""

import os
from pathlib import Path

from loguru import logger

from certdepot.exceptions import (
    ArtifactExistsError,
    ArtifactNotFoundError,
    DepotValidationError,
    StorageError,
)
from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import ArtifactKind, Tag
from certdepot.models import DepotOptions

DIRECTORY_PERM = 0o750
LEAF_PERM = 0o444
PRIVATE_KEY_PERM = 0o440


class FileDepot(Depot):
    """
    File-backed depot.

    Deleting an absent artifact is an error. There is no expiration index,
    so TTL tracking is not supported.
    """

    def __init__(self, base_dir: str, options: DepotOptions | None = None):
        """
        Initialize file depot.

        Args:
            base_dir: Directory holding the artifact files
            options: Defaults for find/generate
        """
        if not base_dir:
            raise DepotValidationError("must provide a depot directory")

        self.base_dir = Path(base_dir)
        self.options = options or DepotOptions()

        try:
            self.base_dir.mkdir(mode=DIRECTORY_PERM, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"creating depot directory {self.base_dir}: {e}") from e

        logger.info(f"Initialized FileDepot at {self.base_dir}")

    def _path(self, tag: Tag) -> Path:
        """Get path to artifact file."""
        name = tag.storage_name
        if not name or name in (".", "..") or "/" in name or os.sep in name:
            raise DepotValidationError(f"invalid depot name '{tag.name}'")
        return self.base_dir / f"{name}.{tag.kind.value}"

    def put(self, tag: Tag, data: bytes) -> None:
        """
        Write artifact file, refusing to replace an existing one.

        An empty file counts as absent and is replaced.
        """
        self._validate_data(data)

        path = self._path(tag)
        perm = PRIVATE_KEY_PERM if tag.kind is ArtifactKind.PRIVATE_KEY else LEAF_PERM

        try:
            fd = self._create(path, perm)
        except OSError as e:
            raise StorageError(f"creating {path}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            self._discard(path)
            raise StorageError(f"writing {path}: {e}") from e

        logger.debug(f"Put {tag.kind.name.lower()} for {tag.storage_name}")

    @staticmethod
    def _create(path: Path, perm: int) -> int:
        flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL
        try:
            return os.open(path, flags, perm)
        except FileExistsError as e:
            if path.stat().st_size > 0:
                raise ArtifactExistsError(f"file {path} already exists") from e

        logger.warning(f"Replacing empty file {path}")
        path.unlink(missing_ok=True)
        try:
            return os.open(path, flags, perm)
        except FileExistsError as e:
            raise ArtifactExistsError(f"file {path} already exists") from e

    @staticmethod
    def _discard(path: Path) -> None:
        """Remove a partially written file so the artifact reads as absent."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove partial file {path}: {e}")

    def get(self, tag: Tag) -> bytes:
        """Read artifact file."""
        path = self._path(tag)

        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(f"file {path} not found") from e
        except OSError as e:
            raise StorageError(f"reading {path}: {e}") from e

        if not data:
            raise ArtifactNotFoundError(f"file {path} is empty")
        return data

    def check(self, tag: Tag) -> bool:
        """Check if artifact file exists."""
        try:
            return self.check_with_error(tag)
        except StorageError as e:
            logger.warning(f"Could not check {tag.storage_name}: {e}")
            return False

    def check_with_error(self, tag: Tag) -> bool:
        path = self._path(tag)

        try:
            return path.stat().st_size > 0
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"checking {path}: {e}") from e

    def delete(self, tag: Tag) -> None:
        """Delete artifact file; absent files are an error."""
        path = self._path(tag)

        try:
            path.unlink()
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(f"file {path} not found") from e
        except OSError as e:
            raise StorageError(f"deleting {path}: {e}") from e

        logger.debug(f"Deleted {tag.kind.name.lower()} for {tag.storage_name}")
