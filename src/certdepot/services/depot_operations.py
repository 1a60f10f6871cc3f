"""
Credential-level depot operations.

Backs ``Depot.save``, ``Depot.find``, ``Depot.generate`` and
``Depot.generate_with_options`` for every backend.
"""

from loguru import logger

from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import crt_tag, csr_tag, priv_key_tag
from certdepot.infrastructure.repositories.ttl import record_expiration
from certdepot.models import Credentials, DepotOptions
from certdepot.pki import Certificate
from certdepot.services.certificate_options import CertificateOptions
from certdepot.services.expiration import delete_if_exists


def save_credentials(depot: Depot, name: str, creds: Credentials) -> None:
    """
    Replace the request, key and certificate of ``name`` with ``creds``.

    The CA certificate of the bundle is not stored. Not transactional: a
    failure part-way leaves partial state behind.
    """
    crt = Certificate.from_pem(creds.cert)

    delete_if_exists(depot, csr_tag(name), priv_key_tag(name), crt_tag(name))

    depot.put(priv_key_tag(name), creds.key)
    depot.put(crt_tag(name), creds.cert)

    record_expiration(depot, name, crt.not_after)
    logger.debug(f"Saved credentials for {name}")


def find_credentials(depot: Depot, name: str, options: DepotOptions) -> Credentials:
    """
    Load the certificate and key of ``name`` bundled with the default CA.

    Raises:
        ArtifactNotFoundError: If the CA certificate, the certificate or
            the key is missing
    """
    ca_cert = depot.get(crt_tag(options.ca))
    cert = depot.get(crt_tag(name))
    key = depot.get(priv_key_tag(name))

    creds = Credentials.create(ca_cert, cert, key)
    creds.server_name = name
    return creds


def generate_default_credentials(
    depot: Depot, name: str, options: DepotOptions
) -> Credentials:
    """Issue credentials for ``name`` using only the depot defaults."""
    return generate_credentials(
        depot, name, options, CertificateOptions(common_name=name, host=name)
    )


def generate_credentials(
    depot: Depot, name: str, options: DepotOptions, opts: CertificateOptions
) -> Credentials:
    """
    Issue credentials in memory, without storing anything.

    The CA and expiration of ``opts`` default to those of the depot; the
    caller's ``opts`` is left unchanged.

    Raises:
        DepotValidationError: If no common name, domain or host is given
        ArtifactNotFoundError: If the CA certificate or key is missing
    """
    opts = opts.model_copy()
    if not opts.ca:
        opts.ca = options.ca
    if not opts.expires:
        opts.expires = options.default_expiration

    _, key = opts.cert_request_in_memory()
    ca_cert = depot.get(crt_tag(opts.ca))
    crt = opts.sign_in_memory(depot)

    creds = Credentials.create(ca_cert, crt.export(), key.export_private())
    creds.server_name = name

    logger.debug(f"Generated credentials for {name} signed by {opts.ca}")
    return creds
