"""Tests for credential-level depot operations (save, find, generate)."""

from datetime import timedelta

import pytest

from certdepot.exceptions import ArtifactNotFoundError, DepotValidationError
from certdepot.infrastructure.repositories import crt_tag, csr_tag, priv_key_tag
from certdepot.pki import Certificate
from certdepot.services.certificate_options import ArtifactState, CertificateOptions


class TestFind:
    """Tests for Depot.find."""

    def test_find_returns_ca_certificate_and_key(self, depot, root_ca, host_opts):
        """Test credentials of a signed host bundle the stored CA certificate."""
        host_opts.create_certificate(depot)

        creds = depot.find("localhost")

        assert creds.ca_cert == depot.get(crt_tag("root"))
        assert creds.cert == depot.get(crt_tag("localhost"))
        assert creds.key == depot.get(priv_key_tag("localhost"))
        assert creds.server_name == "localhost"

    def test_find_missing_identity_fails(self, depot, root_ca):
        """Test finding an identity without a certificate fails."""
        with pytest.raises(ArtifactNotFoundError):
            depot.find("nobody")

    def test_find_without_ca_fails(self, depot):
        """Test finding fails when the default CA does not exist."""
        with pytest.raises(ArtifactNotFoundError):
            depot.find("localhost")


class TestGenerate:
    """Tests for Depot.generate and Depot.generate_with_options."""

    def test_generate_issues_credentials_in_memory(self, depot, root_ca):
        """Test generated credentials are valid and nothing is stored."""
        creds = depot.generate("worker")

        ca = Certificate.from_pem(creds.ca_cert)
        crt = Certificate.from_pem(creds.cert)
        crt.raw.verify_directly_issued_by(ca.raw)
        assert creds.ca_cert == depot.get(crt_tag("root"))
        assert creds.server_name == "worker"

        assert depot.check(crt_tag("worker")) is False
        assert depot.check(csr_tag("worker")) is False
        assert depot.check(priv_key_tag("worker")) is False

    def test_generate_uses_default_expiration(self, depot, root_ca):
        """Test the depot default expiration applies when options omit one."""
        creds = depot.generate("worker")

        not_before, not_after = _validity(creds.cert)
        # Certificates are backdated by ten minutes
        window = not_after - not_before
        assert abs(window - timedelta(hours=1, minutes=10)) <= timedelta(seconds=2)

    def test_generate_empty_name_fails(self, depot, root_ca):
        """Test an empty identity cannot be generated."""
        with pytest.raises(DepotValidationError):
            depot.generate("")

    def test_generate_with_zero_options_fails(self, depot, root_ca):
        """Test all-default options cannot be generated."""
        with pytest.raises(DepotValidationError):
            depot.generate_with_options(CertificateOptions())

    def test_generate_with_options_fills_defaults(self, depot, root_ca):
        """Test missing CA and expiration come from the depot options."""
        opts = CertificateOptions(
            common_name="worker", host="worker", domain=["worker.local"]
        )

        creds = depot.generate_with_options(opts)

        assert creds.server_name == "worker"
        assert creds.ca_cert == depot.get(crt_tag("root"))
        # The caller's options are not modified
        assert opts.ca == ""
        assert opts.request_state is ArtifactState.EMPTY

    def test_generate_with_options_requires_host(self, depot, root_ca):
        """Test options without a host cannot be signed."""
        with pytest.raises(DepotValidationError):
            depot.generate_with_options(CertificateOptions(common_name="worker"))


class TestSave:
    """Tests for Depot.save."""

    def test_save_then_find(self, depot, root_ca):
        """Test saved credentials are found again."""
        creds = depot.generate("worker")

        depot.save("worker", creds)

        found = depot.find("worker")
        assert found.cert == creds.cert
        assert found.key == creds.key
        assert found.ca_cert == creds.ca_cert

    def test_save_replaces_existing_credentials(self, depot, root_ca, host_opts):
        """Test save removes the old request, key and certificate."""
        host_opts.create_certificate(depot)
        creds = depot.generate("localhost")

        depot.save("localhost", creds)

        assert depot.get(crt_tag("localhost")) == creds.cert
        assert depot.get(priv_key_tag("localhost")) == creds.key
        assert depot.check(csr_tag("localhost")) is False

    def test_save_over_empty_files(self, file_depot):
        """Test empty leftover files do not block saving credentials."""
        CertificateOptions(common_name="root", expires=timedelta(hours=1)).init(
            file_depot
        )
        creds = file_depot.generate("worker")
        (file_depot.base_dir / "worker.key").touch()
        (file_depot.base_dir / "worker.crt").touch()

        file_depot.save("worker", creds)

        found = file_depot.find("worker")
        assert found.key == creds.key
        assert found.cert == creds.cert

    def test_save_records_expiration(self, dynamodb_depot):
        """Test save stores the certificate expiration on TTL depots."""
        CertificateOptions(common_name="root", expires=timedelta(hours=1)).init(
            dynamodb_depot
        )
        creds = dynamodb_depot.generate("worker")

        dynamodb_depot.save("worker", creds)

        assert dynamodb_depot.find_record("worker").ttl == _validity(creds.cert)[1]


def _validity(cert: bytes):
    crt = Certificate.from_pem(cert)
    return crt.not_before, crt.not_after
