"""
Depot addressing: artifact kinds, tags and storage name normalization.

A tag is the pair (name, kind); it is the only way artifacts are addressed
in a depot. Every backend stores a tag under ``tag.storage_name``.
"""

import re
from dataclasses import dataclass
from enum import Enum

_CERTIFICATE_REQUEST_NAME_UNACCEPTABLE = re.compile(r"[^a-zA-Z0-9._-]")


class ArtifactKind(str, Enum):
    """Kinds of PKI artifacts, valued by their file extension."""

    CERTIFICATE = "crt"
    PRIVATE_KEY = "key"
    CERTIFICATE_SIGNING_REQUEST = "csr"
    CERTIFICATE_REVOCATION_LIST = "crl"


def format_depot_name(name: str) -> str:
    """Replace spaces with underscores."""
    return name.replace(" ", "_")


def format_certificate_request_name(name: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9._-]`` with an underscore."""
    return _CERTIFICATE_REQUEST_NAME_UNACCEPTABLE.sub("_", name)


@dataclass(frozen=True)
class Tag:
    """
    Address of one artifact in a depot.

    Attributes:
        name: Logical identity name, as given by the caller
        kind: Artifact kind stored under the name
    """

    name: str
    kind: ArtifactKind

    @property
    def storage_name(self) -> str:
        """Normalized name used as the storage key."""
        if self.kind is ArtifactKind.CERTIFICATE_SIGNING_REQUEST:
            return format_certificate_request_name(self.name)
        return format_depot_name(self.name)


def crt_tag(name: str) -> Tag:
    return Tag(name, ArtifactKind.CERTIFICATE)


def priv_key_tag(name: str) -> Tag:
    return Tag(name, ArtifactKind.PRIVATE_KEY)


def csr_tag(name: str) -> Tag:
    return Tag(name, ArtifactKind.CERTIFICATE_SIGNING_REQUEST)


def crl_tag(name: str) -> Tag:
    return Tag(name, ArtifactKind.CERTIFICATE_REVOCATION_LIST)


def _name_for_kind(tag: Tag, kind: ArtifactKind) -> str:
    return tag.name if tag.kind is kind else ""


def name_from_crt_tag(tag: Tag) -> str:
    """Name of a certificate tag, empty for other kinds."""
    return _name_for_kind(tag, ArtifactKind.CERTIFICATE)


def name_from_priv_key_tag(tag: Tag) -> str:
    return _name_for_kind(tag, ArtifactKind.PRIVATE_KEY)


def name_from_csr_tag(tag: Tag) -> str:
    return _name_for_kind(tag, ArtifactKind.CERTIFICATE_SIGNING_REQUEST)


def name_from_crl_tag(tag: Tag) -> str:
    return _name_for_kind(tag, ArtifactKind.CERTIFICATE_REVOCATION_LIST)
