"""PKI primitives: keys, certificates, CSRs and CRLs built with ``cryptography``."""

from certdepot.pki.certificates import (
    Certificate,
    CertificateRevocationList,
    CertificateSigningRequest,
    create_certificate_authority,
    create_certificate_host,
    create_certificate_revocation_list,
    create_certificate_signing_request,
    create_intermediate_certificate_authority,
)
from certdepot.pki.keys import DEFAULT_KEY_BITS, Key, create_rsa_key
from certdepot.pki.names import parse_and_validate_ips, parse_and_validate_uris

__all__ = [
    "DEFAULT_KEY_BITS",
    "Certificate",
    "CertificateRevocationList",
    "CertificateSigningRequest",
    "Key",
    "create_certificate_authority",
    "create_certificate_host",
    "create_certificate_revocation_list",
    "create_certificate_signing_request",
    "create_intermediate_certificate_authority",
    "create_rsa_key",
    "parse_and_validate_ips",
    "parse_and_validate_uris",
]
