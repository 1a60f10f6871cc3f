"""
Certificate lifecycle orchestration.

``CertificateOptions`` describes one identity (subject, alternative names,
key source, expiration, signing CA) and drives it through the depot:

    init               -> self-signed CA certificate, key and CRL
    cert_request       -> CSR and key (computed, then persisted)
    sign               -> certificate signed by the CA (computed, then persisted)
    create_certificate -> cert_request + sign

``create_certificate_on_expiration`` rotates a certificate close to expiry.

The in-memory results of the request and signing phases are cached on the
options value, each with an explicit ``ArtifactState``, so a caller can
compute once and persist separately. ``reset`` clears the cache.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from certdepot.core.logging import logger
from certdepot.exceptions import (
    ArtifactExistsError,
    ArtifactNotFoundError,
    DepotValidationError,
    SigningConstraintError,
)
from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import (
    Tag,
    crl_tag,
    crt_tag,
    csr_tag,
    format_certificate_request_name,
    format_depot_name,
    priv_key_tag,
)
from certdepot.infrastructure.repositories.ttl import record_expiration
from certdepot.pki import (
    DEFAULT_KEY_BITS,
    Certificate,
    CertificateSigningRequest,
    Key,
    create_certificate_authority,
    create_certificate_host,
    create_certificate_revocation_list,
    create_certificate_signing_request,
    create_intermediate_certificate_authority,
    create_rsa_key,
    parse_and_validate_ips,
    parse_and_validate_uris,
)
from certdepot.services.expiration import delete_on_expiration


class ArtifactState(str, Enum):
    """Progress of one cached artifact of the two-phase flow."""

    EMPTY = "empty"
    COMPUTED = "computed"
    PERSISTED = "persisted"


class CertificateOptions(BaseModel):
    """
    Options for creating, requesting and signing certificates.

    Attributes:
        passphrase: Passphrase encrypting the private key PEM
        key_bits: Size of generated RSA keys (2048 when unset)
        organization: Organization (O) of the subject
        country: Country (C) of the subject
        locality: Locality (L) of the subject
        common_name: Common Name (CN) of the subject
        organizational_unit: Organizational Unit (OU) of the subject
        province: State/Province (ST) of the subject
        ip: IP subject alternative names
        domain: DNS subject alternative names
        uri: URI subject alternative names
        key: Path to an existing private key PEM (generate when blank)
        expires: Lifetime of the certificate (init and sign)
        host: Name of the certificate to sign
        ca: Name of the CA that signs
        ca_passphrase: Passphrase decrypting the CA's private key PEM
        intermediate: Sign an intermediate CA instead of a host certificate
    """

    model_config = ConfigDict(populate_by_name=True)

    passphrase: str = Field(default="")
    key_bits: int = Field(default=0)
    organization: str = Field(default="", alias="o")
    country: str = Field(default="", alias="c")
    locality: str = Field(default="", alias="l")
    common_name: str = Field(default="", alias="cn")
    organizational_unit: str = Field(default="", alias="ou")
    province: str = Field(default="", alias="st")
    ip: list[str] = Field(default_factory=list)
    domain: list[str] = Field(default_factory=list, alias="dns")
    uri: list[str] = Field(default_factory=list)
    key: str = Field(default="")

    expires: timedelta = Field(default=timedelta(0))

    host: str = Field(default="")
    ca: str = Field(default="")
    ca_passphrase: str = Field(default="")
    intermediate: bool = Field(default=False)

    _csr: CertificateSigningRequest | None = PrivateAttr(default=None)
    _key: Key | None = PrivateAttr(default=None)
    _crt: Certificate | None = PrivateAttr(default=None)
    _request_state: ArtifactState = PrivateAttr(default=ArtifactState.EMPTY)
    _certificate_state: ArtifactState = PrivateAttr(default=ArtifactState.EMPTY)

    @property
    def request_state(self) -> ArtifactState:
        """State of the cached CSR and key."""
        return self._request_state

    @property
    def certificate_state(self) -> ArtifactState:
        """State of the cached signed certificate."""
        return self._certificate_state

    def _expires_at(self) -> datetime:
        return datetime.now(UTC) + self.expires

    def init(self, depot: Depot) -> None:
        """
        Create a self-signed CA with its private key and an empty CRL.

        Ignores any cached request or certificate.

        Raises:
            DepotValidationError: If the common name is missing
            ArtifactExistsError: If a certificate or key already exists
                under the CA name; nothing is written in that case
        """
        if not self.common_name:
            raise DepotValidationError("must provide a common name for the CA")

        name = format_depot_name(self.common_name)

        if depot.check_with_error(crt_tag(name)):
            raise ArtifactExistsError(f"CA certificate '{name}' already exists")
        if depot.check_with_error(priv_key_tag(name)):
            raise ArtifactExistsError(f"CA private key '{name}' already exists")

        key = self._get_or_create_private_key()
        expires = self._expires_at()

        crt = create_certificate_authority(
            key,
            self.organizational_unit,
            expires,
            self.organization,
            self.country,
            self.province,
            self.locality,
            self.common_name,
        )

        depot.put_exclusive(crt_tag(name), crt.export())
        depot.put_exclusive(priv_key_tag(name), self._export_key(key))

        # Consumers that require a CRL for every CA get an empty one
        crl = create_certificate_revocation_list(key, crt, expires)
        depot.put(crl_tag(name), crl.export())

        record_expiration(depot, name, crt.not_after)

        logger.info(f"Created certificate authority {name} (expires {crt.not_after})")

    def reset(self) -> None:
        """Drop the cached request, key and certificate."""
        self._csr = None
        self._key = None
        self._crt = None
        self._request_state = ArtifactState.EMPTY
        self._certificate_state = ArtifactState.EMPTY

    def cert_request(self, depot: Depot) -> None:
        """Create a certificate request and key and store them in the depot."""
        self.cert_request_in_memory()
        self.put_cert_request_from_memory(depot)

    def cert_request_in_memory(self) -> tuple[CertificateSigningRequest, Key]:
        """
        Create (once) a certificate request and its private key.

        Returns:
            The cached request and key if already computed

        Raises:
            DepotValidationError: If a SAN value is invalid, or neither a
                common name nor a domain is given
        """
        if self._request_state is not ArtifactState.EMPTY:
            return self._csr, self._key

        ips = parse_and_validate_ips(self.ip)
        uris = parse_and_validate_uris(self.uri)
        name = self._certificate_request_name()
        key = self._get_or_create_private_key()

        csr = create_certificate_signing_request(
            key,
            self.organizational_unit,
            ips,
            self.domain,
            uris,
            self.organization,
            self.country,
            self.province,
            self.locality,
            name,
        )

        self._csr = csr
        self._key = key
        self._request_state = ArtifactState.COMPUTED
        return csr, key

    def put_cert_request_from_memory(self, depot: Depot) -> None:
        """
        Store the cached certificate request and key.

        Raises:
            DepotValidationError: If no request was computed
            ArtifactExistsError: If a request or key already exists
        """
        if self._request_state is ArtifactState.EMPTY:
            raise DepotValidationError(
                "must make a certificate request before putting it into the depot"
            )

        name = format_certificate_request_name(self._certificate_request_name())

        if depot.check_with_error(csr_tag(name)):
            raise ArtifactExistsError(f"certificate request '{name}' already exists")
        if depot.check_with_error(priv_key_tag(name)):
            raise ArtifactExistsError(f"private key '{name}' already exists")

        depot.put_exclusive(csr_tag(name), self._csr.export())
        depot.put_exclusive(priv_key_tag(name), self._export_key(self._key))

        self._request_state = ArtifactState.PERSISTED
        logger.debug(f"Stored certificate request and key for {name}")

    def sign(self, depot: Depot) -> None:
        """Sign the certificate request and store the certificate."""
        self.sign_in_memory(depot)
        self.put_cert_from_memory(depot)

    def sign_in_memory(self, depot: Depot) -> Certificate:
        """
        Sign (once) the certificate request of ``host`` with ``ca``.

        The request is taken from the cache when present, otherwise from
        the depot.

        Returns:
            The cached certificate if already signed

        Raises:
            DepotValidationError: If host or CA name is missing
            ArtifactNotFoundError: If the request, CA certificate or CA key
                is missing
            SigningConstraintError: If the CA certificate is not a CA
        """
        if self._certificate_state is not ArtifactState.EMPTY:
            return self._crt

        if not self.host:
            raise DepotValidationError("must provide name of host")
        if not self.ca:
            raise DepotValidationError("must provide name of CA")

        request_name = format_depot_name(self.host)
        ca_name = format_depot_name(self.ca)

        csr = self._csr
        if csr is None:
            csr = CertificateSigningRequest.from_pem(
                _get_artifact(
                    depot, csr_tag(request_name), "host's certificate signing request"
                )
            )

        ca_crt = Certificate.from_pem(
            _get_artifact(depot, crt_tag(ca_name), "CA certificate")
        )
        # Path length constraints are not enforced
        if not ca_crt.is_ca:
            raise SigningConstraintError(
                f"certificate '{ca_name}' is not allowed to sign certificates"
            )

        if self.ca_passphrase:
            ca_key_pem = _get_artifact(
                depot, priv_key_tag(ca_name), "encrypted CA key"
            )
            ca_key = Key.from_encrypted_pem(ca_key_pem, self.ca_passphrase.encode())
        else:
            ca_key_pem = _get_artifact(depot, priv_key_tag(ca_name), "CA key")
            ca_key = Key.from_pem(ca_key_pem)

        expires = self._expires_at()
        if self.intermediate:
            logger.info(f"Signing intermediate CA {request_name} with {ca_name}")
            crt = create_intermediate_certificate_authority(
                ca_crt, ca_key, csr, expires
            )
        else:
            logger.info(f"Signing host certificate {request_name} with {ca_name}")
            crt = create_certificate_host(ca_crt, ca_key, csr, expires)

        self._crt = crt
        self._certificate_state = ArtifactState.COMPUTED
        return crt

    def put_cert_from_memory(self, depot: Depot) -> None:
        """
        Store the cached certificate under ``host`` and record its expiration.

        Raises:
            DepotValidationError: If no certificate was signed
            ArtifactExistsError: If a certificate already exists
        """
        if self._certificate_state is ArtifactState.EMPTY:
            raise DepotValidationError(
                "must sign the certificate before putting it into the depot"
            )

        name = format_depot_name(self.host)
        depot.put_exclusive(crt_tag(name), self._crt.export())
        record_expiration(depot, name, self._crt.not_after)

        self._certificate_state = ArtifactState.PERSISTED
        logger.debug(f"Stored certificate for {name}")

    def create_certificate(self, depot: Depot) -> None:
        """Request and sign a certificate, storing every artifact."""
        self.cert_request(depot)
        self.sign(depot)

    def create_certificate_on_expiration(self, depot: Depot, after: timedelta) -> bool:
        """
        Create the certificate if it is missing or expires within ``after``.

        An expiring certificate is deleted with its request and key first.
        Not meant for CA certificates.

        Returns:
            Whether a certificate was created
        """
        if depot.check_with_error(crt_tag(self.common_name)):
            if not delete_on_expiration(depot, self.common_name, after):
                return False
            logger.info(f"Rotating expiring certificate {self.common_name}")
            self.reset()

        self.create_certificate(depot)
        return True

    def _certificate_request_name(self) -> str:
        if self.common_name:
            return self.common_name
        if self.domain:
            return self.domain[0]
        raise DepotValidationError("must provide a common name or domain")

    def _get_or_create_private_key(self) -> Key:
        if self.key:
            try:
                data = Path(self.key).read_bytes()
            except OSError as e:
                raise DepotValidationError(f"reading key '{self.key}': {e}") from e
            return Key.from_pem(data)

        return create_rsa_key(self.key_bits or DEFAULT_KEY_BITS)

    def _export_key(self, key: Key) -> bytes:
        if self.passphrase:
            return key.export_encrypted_private(self.passphrase.encode())
        return key.export_private()


def _get_artifact(depot: Depot, tag: Tag, what: str) -> bytes:
    try:
        return depot.get(tag)
    except ArtifactNotFoundError as e:
        raise ArtifactNotFoundError(f"getting {what}: {e}") from e
