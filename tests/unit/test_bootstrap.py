"""Tests for depot bootstrapping."""

from datetime import timedelta

import pytest
from moto import mock_aws

from certdepot.exceptions import DepotValidationError
from certdepot.infrastructure.implementations.aws import DynamoDBDepot
from certdepot.infrastructure.implementations.local import FileDepot
from certdepot.infrastructure.repositories import crt_tag, priv_key_tag
from certdepot.models import DynamoDBOptions
from certdepot.pki import Certificate
from certdepot.services.bootstrap import BootstrapDepotConfig, bootstrap_depot
from certdepot.services.certificate_options import CertificateOptions


@pytest.fixture
def ca_opts():
    """Options of the bootstrap CA."""
    return CertificateOptions(cn="root", expires=timedelta(days=1))


@pytest.fixture
def service_opts():
    """Options of the bootstrap service certificate."""
    return CertificateOptions(
        cn="service", host="service", ca="root", expires=timedelta(hours=1)
    )


@pytest.fixture
def conf(temp_dir, ca_opts, service_opts):
    """Bootstrap configuration for a file depot."""
    return BootstrapDepotConfig(
        file_depot=str(temp_dir / "depot"),
        ca_name="root",
        ca_opts=ca_opts,
        service_name="service",
        service_opts=service_opts,
    )


class TestValidateConfig:
    """Tests for BootstrapDepotConfig.validate_config."""

    def test_valid_config(self, conf):
        """Test a complete configuration passes."""
        conf.validate_config()

    def test_requires_a_depot(self, conf):
        """Test a depot must be selected."""
        conf.file_depot = ""

        with pytest.raises(DepotValidationError, match="exactly one depot"):
            conf.validate_config()

    def test_rejects_two_depots(self, conf):
        """Test only one depot may be selected."""
        conf.dynamodb_depot = DynamoDBOptions(table_name="certs")

        with pytest.raises(DepotValidationError, match="exactly one depot"):
            conf.validate_config()

    def test_zero_dynamodb_options_do_not_count(self, conf):
        """Test empty DynamoDB options do not select a depot."""
        conf.dynamodb_depot = DynamoDBOptions()

        conf.validate_config()

    @pytest.mark.parametrize("field", ["ca_name", "service_name"])
    def test_requires_names(self, conf, field):
        """Test CA and service names are required."""
        setattr(conf, field, "")

        with pytest.raises(DepotValidationError):
            conf.validate_config()

    def test_requires_ca_cert_and_key_together(self, conf):
        """Test an imported CA needs both its certificate and key."""
        conf.ca_cert = "/tmp/root.crt"

        with pytest.raises(DepotValidationError, match="both the CA certificate"):
            conf.validate_config()

    def test_ca_options_must_match_ca_name(self, conf):
        """Test the CA options describe the named CA."""
        conf.ca_opts.common_name = "other"

        with pytest.raises(DepotValidationError):
            conf.validate_config()

    def test_service_options_must_match(self, conf):
        """Test the service options name the service and its CA."""
        conf.service_opts.ca = "other"

        with pytest.raises(DepotValidationError, match="service options CA"):
            conf.validate_config()

    def test_accepts_short_option_names(self, temp_dir):
        """Test configuration loads from the short option keys."""
        conf = BootstrapDepotConfig.model_validate(
            {
                "file_depot": str(temp_dir),
                "ca_name": "root",
                "ca_opts": {"cn": "root", "expires": 3600},
                "service_name": "service",
                "service_opts": {"cn": "service", "host": "service", "ca": "root"},
            }
        )

        conf.validate_config()
        assert conf.ca_opts.expires == timedelta(hours=1)


class TestBootstrapDepot:
    """Tests for bootstrap_depot."""

    def test_bootstrap_file_depot(self, conf):
        """Test bootstrap creates the CA and the service certificate."""
        depot = bootstrap_depot(conf)

        assert isinstance(depot, FileDepot)
        assert depot.options.ca == "root"
        creds = depot.find("service")
        assert creds.ca_cert == depot.get(crt_tag("root"))

    def test_bootstrap_keeps_existing_certificates(self, conf):
        """Test bootstrapping an existing depot changes nothing."""
        depot = bootstrap_depot(conf)
        ca = depot.get(crt_tag("root"))
        service = depot.get(crt_tag("service"))

        again = conf.model_copy(
            update={
                "ca_opts": CertificateOptions(cn="root", expires=timedelta(days=1)),
                "service_opts": CertificateOptions(
                    cn="service", host="service", ca="root"
                ),
            }
        )
        depot = bootstrap_depot(again)

        assert depot.get(crt_tag("root")) == ca
        assert depot.get(crt_tag("service")) == service

    def test_bootstrap_imports_ca(self, conf, temp_dir, ca_opts):
        """Test an existing CA is imported from PEM files."""
        source = FileDepot(base_dir=str(temp_dir / "source"))
        ca_opts.init(source)
        ca_cert = temp_dir / "root.crt"
        ca_key = temp_dir / "root.key"
        ca_cert.write_bytes(source.get(crt_tag("root")))
        ca_key.write_bytes(source.get(priv_key_tag("root")))

        conf.ca_opts = None
        conf.ca_cert = str(ca_cert)
        conf.ca_key = str(ca_key)
        depot = bootstrap_depot(conf)

        assert depot.get(crt_tag("root")) == ca_cert.read_bytes()
        ca = Certificate.from_pem(ca_cert.read_bytes())
        crt = Certificate.from_pem(depot.get(crt_tag("service")))
        crt.raw.verify_directly_issued_by(ca.raw)

    def test_bootstrap_missing_ca_file(self, conf, temp_dir):
        """Test unreadable CA files are rejected."""
        conf.ca_cert = str(temp_dir / "missing.crt")
        conf.ca_key = str(temp_dir / "missing.key")

        with pytest.raises(DepotValidationError):
            bootstrap_depot(conf)

    def test_bootstrap_requires_ca_options(self, conf):
        """Test a missing CA cannot be created without options."""
        conf.ca_opts = None

        with pytest.raises(DepotValidationError, match="cannot create CA"):
            bootstrap_depot(conf)

    def test_bootstrap_requires_service_options(self, conf):
        """Test a missing service certificate needs options."""
        conf.service_opts = None

        with pytest.raises(DepotValidationError, match="service certificate"):
            bootstrap_depot(conf)

    def test_bootstrap_dynamodb_depot(self, ca_opts, service_opts):
        """Test bootstrap against a DynamoDB depot records expirations."""
        conf = BootstrapDepotConfig(
            dynamodb_depot=DynamoDBOptions(
                table_name="bootstrap-test", auto_create_table=True
            ),
            ca_name="root",
            ca_opts=ca_opts,
            service_name="service",
            service_opts=service_opts,
        )

        with mock_aws():
            depot = bootstrap_depot(conf)

            assert isinstance(depot, DynamoDBDepot)
            assert depot.options.ca == "root"
            assert depot.find_record("service").ttl is not None
            assert depot.find("service").server_name == "service"
