"""
X.509 certificates, certificate signing requests and revocation lists.

Thin wrappers over ``cryptography`` that build, sign and (de)serialize the
artifacts kept in a depot. No storage happens here.
"""

import ipaddress
from datetime import UTC, datetime, timedelta

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from certdepot.exceptions import DepotValidationError
from certdepot.pki.keys import Key

# Backdate NotBefore to tolerate clock skew between issuer and relying party
CLOCK_SKEW_ALLOWANCE = timedelta(minutes=10)


class Certificate:
    """PEM-serializable X.509 certificate."""

    def __init__(self, raw: x509.Certificate):
        self.raw = raw

    @classmethod
    def from_pem(cls, data: bytes) -> "Certificate":
        try:
            return cls(x509.load_pem_x509_certificate(data))
        except ValueError as e:
            raise DepotValidationError(f"getting certificate from PEM: {e}") from e

    def export(self) -> bytes:
        return self.raw.public_bytes(serialization.Encoding.PEM)

    @property
    def is_ca(self) -> bool:
        """Whether BasicConstraints marks this certificate as a CA."""
        try:
            constraints = self.raw.extensions.get_extension_for_class(
                x509.BasicConstraints
            )
        except x509.ExtensionNotFound:
            return False
        return constraints.value.ca

    @property
    def not_before(self) -> datetime:
        return self.raw.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.raw.not_valid_after_utc


class CertificateSigningRequest:
    """PEM-serializable certificate signing request."""

    def __init__(self, raw: x509.CertificateSigningRequest):
        self.raw = raw

    @classmethod
    def from_pem(cls, data: bytes) -> "CertificateSigningRequest":
        try:
            return cls(x509.load_pem_x509_csr(data))
        except ValueError as e:
            raise DepotValidationError(
                f"getting certificate request from PEM: {e}"
            ) from e

    def export(self) -> bytes:
        return self.raw.public_bytes(serialization.Encoding.PEM)


class CertificateRevocationList:
    """PEM-serializable certificate revocation list."""

    def __init__(self, raw: x509.CertificateRevocationList):
        self.raw = raw

    @classmethod
    def from_pem(cls, data: bytes) -> "CertificateRevocationList":
        try:
            return cls(x509.load_pem_x509_crl(data))
        except ValueError as e:
            raise DepotValidationError(
                f"getting certificate revocation list from PEM: {e}"
            ) from e

    def export(self) -> bytes:
        return self.raw.public_bytes(serialization.Encoding.PEM)


def _subject(
    common_name: str,
    organization: str = "",
    organizational_unit: str = "",
    country: str = "",
    province: str = "",
    locality: str = "",
) -> x509.Name:
    fields = [
        (NameOID.COUNTRY_NAME, country),
        (NameOID.STATE_OR_PROVINCE_NAME, province),
        (NameOID.LOCALITY_NAME, locality),
        (NameOID.ORGANIZATION_NAME, organization),
        (NameOID.ORGANIZATIONAL_UNIT_NAME, organizational_unit),
        (NameOID.COMMON_NAME, common_name),
    ]
    try:
        return x509.Name(
            [x509.NameAttribute(oid, value) for oid, value in fields if value]
        )
    except ValueError as e:
        raise DepotValidationError(f"building subject name: {e}") from e


def _signing_algorithm(key: Key) -> hashes.HashAlgorithm | None:
    # EdDSA keys sign without a separate digest
    if isinstance(key.private, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
        return None
    return hashes.SHA256()


def _validity_start(expires: datetime) -> datetime:
    start = datetime.now(UTC) - CLOCK_SKEW_ALLOWANCE
    if expires < start:
        raise DepotValidationError(
            f"expiration {expires.isoformat()} precedes validity start"
        )
    return start


def create_certificate_authority(
    key: Key,
    organizational_unit: str,
    expires: datetime,
    organization: str,
    country: str,
    province: str,
    locality: str,
    common_name: str,
    permit_domains: list[str] | None = None,
) -> Certificate:
    """
    Create a self-signed CA certificate.

    Args:
        key: CA keypair
        organizational_unit: OU of the subject
        expires: NotAfter of the certificate
        organization: O of the subject
        country: C of the subject
        province: ST of the subject
        locality: L of the subject
        common_name: CN of the subject
        permit_domains: DNS domains the CA is constrained to (optional)

    Returns:
        Self-signed CA certificate
    """
    subject = _subject(
        common_name, organization, organizational_unit, country, province, locality
    )

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public)
        .serial_number(x509.random_serial_number())
        .not_valid_before(_validity_start(expires))
        .not_valid_after(expires)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=False,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public), critical=False
        )
    )

    if permit_domains:
        builder = builder.add_extension(
            x509.NameConstraints(
                permitted_subtrees=[x509.DNSName(d) for d in permit_domains],
                excluded_subtrees=None,
            ),
            critical=True,
        )

    try:
        return Certificate(builder.sign(key.private, _signing_algorithm(key)))
    except (ValueError, TypeError) as e:
        raise DepotValidationError(f"signing certificate authority: {e}") from e


def create_certificate_signing_request(
    key: Key,
    organizational_unit: str,
    ips: list[ipaddress.IPv4Address | ipaddress.IPv6Address],
    domains: list[str],
    uris: list[str],
    organization: str,
    country: str,
    province: str,
    locality: str,
    name: str,
) -> CertificateSigningRequest:
    """Create a CSR for ``name`` with the given subject alternative names."""
    builder = x509.CertificateSigningRequestBuilder().subject_name(
        _subject(name, organization, organizational_unit, country, province, locality)
    )

    alt_names: list[x509.GeneralName] = [x509.IPAddress(ip) for ip in ips]
    alt_names += [x509.DNSName(domain) for domain in domains]
    alt_names += [x509.UniformResourceIdentifier(uri) for uri in uris]
    if alt_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(alt_names), critical=False
        )

    try:
        return CertificateSigningRequest(
            builder.sign(key.private, _signing_algorithm(key))
        )
    except (ValueError, TypeError) as e:
        raise DepotValidationError(f"signing certificate request: {e}") from e


def _issue(
    ca: Certificate,
    ca_key: Key,
    csr: CertificateSigningRequest,
    expires: datetime,
    constraints: x509.BasicConstraints,
    key_usage: x509.KeyUsage,
    extended_key_usage: x509.ExtendedKeyUsage | None,
) -> Certificate:
    if not csr.raw.is_signature_valid:
        raise DepotValidationError("certificate request signature is invalid")

    public_key = csr.raw.public_key()
    builder = (
        x509.CertificateBuilder()
        .subject_name(csr.raw.subject)
        .issuer_name(ca.raw.subject)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(_validity_start(expires))
        .not_valid_after(expires)
        .add_extension(constraints, critical=True)
        .add_extension(key_usage, critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca.raw.public_key()),
            critical=False,
        )
    )
    if extended_key_usage is not None:
        builder = builder.add_extension(extended_key_usage, critical=False)

    try:
        san = csr.raw.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        builder = builder.add_extension(san.value, critical=False)
    except x509.ExtensionNotFound:
        pass

    try:
        return Certificate(builder.sign(ca_key.private, _signing_algorithm(ca_key)))
    except (ValueError, TypeError) as e:
        raise DepotValidationError(f"signing certificate: {e}") from e


def create_certificate_host(
    ca: Certificate,
    ca_key: Key,
    csr: CertificateSigningRequest,
    expires: datetime,
) -> Certificate:
    """Sign ``csr`` with the CA as a leaf (server and client auth) certificate."""
    return _issue(
        ca,
        ca_key,
        csr,
        expires,
        x509.BasicConstraints(ca=False, path_length=None),
        x509.KeyUsage(
            digital_signature=True,
            content_commitment=False,
            key_encipherment=True,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=False,
            crl_sign=False,
            encipher_only=False,
            decipher_only=False,
        ),
        x509.ExtendedKeyUsage(
            [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
        ),
    )


def create_intermediate_certificate_authority(
    ca: Certificate,
    ca_key: Key,
    csr: CertificateSigningRequest,
    expires: datetime,
) -> Certificate:
    """Sign ``csr`` with the CA as an intermediate CA (path length 0)."""
    return _issue(
        ca,
        ca_key,
        csr,
        expires,
        x509.BasicConstraints(ca=True, path_length=0),
        x509.KeyUsage(
            digital_signature=False,
            content_commitment=False,
            key_encipherment=False,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=True,
            crl_sign=True,
            encipher_only=False,
            decipher_only=False,
        ),
        None,
    )


def create_certificate_revocation_list(
    key: Key, ca: Certificate, expires: datetime
) -> CertificateRevocationList:
    """Create an empty CRL issued by ``ca``, valid until ``expires``."""
    builder = (
        x509.CertificateRevocationListBuilder()
        .issuer_name(ca.raw.subject)
        .last_update(_validity_start(expires))
        .next_update(expires)
    )
    try:
        return CertificateRevocationList(
            builder.sign(key.private, _signing_algorithm(key))
        )
    except (ValueError, TypeError) as e:
        raise DepotValidationError(
            f"signing certificate revocation list: {e}"
        ) from e
