"""
Depot bootstrapping for services.

Creates the configured depot, makes sure the CA exists (creating it or
importing it from PEM files) and issues the service certificate.

Usage:
    from certdepot.services.bootstrap import BootstrapDepotConfig, bootstrap_depot

    conf = BootstrapDepotConfig(
        file_depot="/var/lib/myservice/certs",
        ca_name="root",
        ca_opts=CertificateOptions(cn="root", expires=timedelta(days=365)),
        service_name="myservice",
        service_opts=CertificateOptions(
            cn="myservice", host="myservice", ca="root", expires=timedelta(days=30)
        ),
    )
    depot = bootstrap_depot(conf)
"""

from pathlib import Path

from pydantic import BaseModel, Field

from certdepot.core.logging import logger
from certdepot.exceptions import DepotValidationError
from certdepot.infrastructure.factory import DepotFactory
from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import crt_tag, priv_key_tag
from certdepot.infrastructure.repositories.ttl import record_expiration
from certdepot.models import DynamoDBOptions
from certdepot.pki import Certificate
from certdepot.services.certificate_options import CertificateOptions


class BootstrapDepotConfig(BaseModel):
    """
    Configuration for bootstrapping a depot.

    Attributes:
        file_depot: Directory of a filesystem depot
        dynamodb_depot: Options of a DynamoDB depot
        ca_name: Name of the CA
        ca_cert: Path to an existing CA certificate PEM to import
        ca_key: Path to the private key PEM of the imported CA
        ca_opts: Options used to create the CA when it does not exist
        service_name: Name of the service certificate
        service_opts: Options used to create the service certificate
    """

    file_depot: str = Field(default="")
    dynamodb_depot: DynamoDBOptions | None = Field(default=None)

    ca_name: str = Field(default="")
    ca_cert: str = Field(default="")
    ca_key: str = Field(default="")
    ca_opts: CertificateOptions | None = Field(default=None)

    service_name: str = Field(default="")
    service_opts: CertificateOptions | None = Field(default=None)

    def validate_config(self) -> None:
        """
        Check the configuration is complete and consistent.

        Raises:
            DepotValidationError: Listing every problem found
        """
        errors = []

        use_dynamodb = (
            self.dynamodb_depot is not None and not self.dynamodb_depot.is_zero()
        )
        if bool(self.file_depot) == use_dynamodb:
            errors.append("must specify exactly one depot type")

        if not self.ca_name:
            errors.append("must specify the name of the CA")
        if not self.service_name:
            errors.append("must specify the name of the service")

        if bool(self.ca_cert) != bool(self.ca_key):
            errors.append("must provide both the CA certificate and key, or neither")

        if self.ca_opts is not None and self.ca_opts.common_name != self.ca_name:
            errors.append("CA name and CA options common name must match")

        if self.service_opts is not None:
            if self.service_opts.common_name != self.service_name:
                errors.append(
                    "service name and service options common name must match"
                )
            if self.service_opts.ca != self.ca_name:
                errors.append("CA name and service options CA must match")

        if errors:
            raise DepotValidationError("; ".join(errors))


def create_depot(conf: BootstrapDepotConfig) -> Depot:
    """Create the depot selected by ``conf``, with ``ca_name`` as default CA."""
    if conf.file_depot:
        factory = DepotFactory(
            provider="file", base_dir=conf.file_depot, default_ca=conf.ca_name
        )
        return factory.get_depot()

    options = conf.dynamodb_depot
    factory = DepotFactory(
        provider="dynamodb",
        dynamodb_table=options.table_name,
        aws_region=options.region,
        dynamodb_host=options.host,
        auto_create_table=options.auto_create_table,
        default_ca=options.depot_options.ca or conf.ca_name,
        default_expiration=options.depot_options.default_expiration,
    )
    return factory.get_depot()


def _read_pem(path: str, what: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise DepotValidationError(f"reading {what} file '{path}': {e}") from e


def import_ca(depot: Depot, name: str, cert_path: str, key_path: str) -> None:
    """
    Store an existing CA certificate and key under ``name``.

    Raises:
        DepotValidationError: If a file cannot be read or is not a PEM
        ArtifactExistsError: If a certificate or key already exists
    """
    cert = _read_pem(cert_path, "CA certificate")
    key = _read_pem(key_path, "CA key")
    crt = Certificate.from_pem(cert)

    depot.put_exclusive(crt_tag(name), cert)
    depot.put_exclusive(priv_key_tag(name), key)
    record_expiration(depot, name, crt.not_after)

    logger.info(f"Imported certificate authority {name} from {cert_path}")


def bootstrap_depot(conf: BootstrapDepotConfig) -> Depot:
    """
    Create a depot holding the CA and the service certificate.

    Existing CA and service certificates are left as they are.

    Raises:
        DepotValidationError: If the configuration is invalid, or options
            are needed to create a missing certificate but not given
    """
    conf.validate_config()
    depot = create_depot(conf)

    if not depot.check(crt_tag(conf.ca_name)):
        if conf.ca_cert:
            import_ca(depot, conf.ca_name, conf.ca_cert, conf.ca_key)
        elif conf.ca_opts is None:
            raise DepotValidationError(
                f"cannot create CA '{conf.ca_name}' with no options"
            )
        else:
            conf.ca_opts.init(depot)
    else:
        logger.debug(f"CA {conf.ca_name} already exists")

    if not depot.check(crt_tag(conf.service_name)):
        if conf.service_opts is None:
            raise DepotValidationError(
                f"cannot create service certificate '{conf.service_name}' "
                "with no options"
            )
        conf.service_opts.create_certificate(depot)
    else:
        logger.debug(f"Service certificate {conf.service_name} already exists")

    logger.info(f"Bootstrapped depot for service {conf.service_name}")
    return depot
