"""RSA private keys and their PEM encodings."""

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from certdepot.exceptions import DepotValidationError

DEFAULT_KEY_BITS = 2048


class Key:
    """
    Private key wrapper.

    Attributes:
        private: The underlying ``cryptography`` private key
    """

    def __init__(self, private: PrivateKeyTypes):
        self.private = private

    @property
    def public(self):
        return self.private.public_key()

    @classmethod
    def from_pem(cls, data: bytes) -> "Key":
        """Load an unencrypted PEM private key."""
        try:
            private = serialization.load_pem_private_key(data, password=None)
        except (ValueError, TypeError) as e:
            raise DepotValidationError(f"getting key from PEM: {e}") from e
        return cls(private)

    @classmethod
    def from_encrypted_pem(cls, data: bytes, passphrase: bytes) -> "Key":
        """Load a passphrase-protected PEM private key."""
        try:
            private = serialization.load_pem_private_key(data, password=passphrase)
        except (ValueError, TypeError) as e:
            raise DepotValidationError(f"getting encrypted key from PEM: {e}") from e
        return cls(private)

    def export_private(self) -> bytes:
        return self.private.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def export_encrypted_private(self, passphrase: bytes) -> bytes:
        return self.private.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.BestAvailableEncryption(passphrase),
        )

    def export_public(self) -> bytes:
        return self.public.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )


def create_rsa_key(bits: int = DEFAULT_KEY_BITS) -> Key:
    """
    Generate a new RSA keypair.

    Args:
        bits: Modulus size in bits

    Returns:
        Freshly generated key

    Raises:
        DepotValidationError: If the key size is rejected
    """
    try:
        private = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    except ValueError as e:
        raise DepotValidationError(f"creating RSA key: {e}") from e
    return Key(private)
