"""In-memory credential bundles returned by issuance calls."""

from cryptography.hazmat.primitives import serialization
from pydantic import BaseModel, Field, ValidationError

from certdepot.exceptions import DepotValidationError
from certdepot.pki import Certificate, Key


class Credentials(BaseModel):
    """
    CA certificate, leaf certificate and private key for one identity.

    Credentials are never required to be persisted; use ``Depot.save`` to
    store them.

    Attributes:
        ca_cert: PEM-encoded certificate of the issuing CA
        cert: PEM-encoded leaf certificate
        key: PEM-encoded (unencrypted) private key of the leaf
        server_name: Identity the credentials were issued for
    """

    ca_cert: bytes = Field(..., description="PEM-encoded CA certificate")
    cert: bytes = Field(..., description="PEM-encoded certificate")
    key: bytes = Field(..., description="PEM-encoded private key")
    server_name: str = Field(default="", description="Identity name")

    @classmethod
    def create(cls, ca_cert: bytes, cert: bytes, key: bytes) -> "Credentials":
        """
        Build credentials and check they are usable.

        Raises:
            DepotValidationError: If a PEM is empty or unparseable, or the
                key does not belong to the certificate
        """
        creds = cls(ca_cert=ca_cert, cert=cert, key=key)
        creds.validate_pems()
        return creds

    @classmethod
    def from_json(cls, data: bytes | str) -> "Credentials":
        try:
            creds = cls.model_validate_json(data)
        except ValidationError as e:
            raise DepotValidationError(f"decoding credentials: {e}") from e
        creds.validate_pems()
        return creds

    def validate_pems(self) -> None:
        if not self.ca_cert:
            raise DepotValidationError("CA certificate should not be empty")
        if not self.cert:
            raise DepotValidationError("certificate should not be empty")
        if not self.key:
            raise DepotValidationError("key should not be empty")

        Certificate.from_pem(self.ca_cert)
        crt = Certificate.from_pem(self.cert)
        key = Key.from_pem(self.key)

        public_format = serialization.PublicFormat.SubjectPublicKeyInfo
        if crt.raw.public_key().public_bytes(
            serialization.Encoding.DER, public_format
        ) != key.public.public_bytes(serialization.Encoding.DER, public_format):
            raise DepotValidationError("key does not match certificate")

    def export(self) -> bytes:
        """Serialize the credentials as JSON."""
        return self.model_dump_json().encode()
