"""Global pytest configuration and fixtures for all tests."""

import os
import shutil
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest
from moto import mock_aws

from certdepot.infrastructure.implementations.aws import DynamoDBDepot
from certdepot.infrastructure.implementations.local import FileDepot
from certdepot.models import DepotOptions, DynamoDBOptions
from certdepot.services.certificate_options import CertificateOptions

TEST_TABLE = "certdepot-test"
TEST_REGION = "us-east-1"


@pytest.fixture(scope="session", autouse=True)
def set_test_env_vars():
    """
    Set environment variables for testing.

    Provides dummy AWS credentials so the in-process DynamoDB mock never
    reaches a real account.

    These are NOT real credentials - just placeholders for testing.
    """
    original_env = {}

    test_env_vars = {
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SECURITY_TOKEN": "testing",
        "AWS_SESSION_TOKEN": "testing",
        "AWS_DEFAULT_REGION": TEST_REGION,
        "CERTDEPOT_LOG_LEVEL": "DEBUG",
    }

    for key, value in test_env_vars.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield

    for key, original_value in original_env.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path)


@pytest.fixture
def depot_options():
    """Depot defaults shared by both backends."""
    return DepotOptions(ca="root", default_expiration=timedelta(hours=1))


@pytest.fixture
def file_depot(temp_dir, depot_options):
    """Create a file depot in a temporary directory."""
    return FileDepot(base_dir=str(temp_dir / "depot"), options=depot_options)


@pytest.fixture
def dynamodb_depot(depot_options):
    """Create a DynamoDB depot backed by moto's in-process DynamoDB."""
    with mock_aws():
        yield DynamoDBDepot(
            DynamoDBOptions(
                table_name=TEST_TABLE,
                region=TEST_REGION,
                auto_create_table=True,
                depot_options=depot_options,
            )
        )


@pytest.fixture(params=["file", "dynamodb"])
def depot(request):
    """Each test using this fixture runs once per backend."""
    return request.getfixturevalue(f"{request.param}_depot")


@pytest.fixture
def root_ca(depot):
    """Initialize a CA named "root" in the depot."""
    opts = CertificateOptions(common_name="root", expires=timedelta(minutes=1))
    opts.init(depot)
    return opts


@pytest.fixture
def host_opts():
    """Options for a host certificate signed by "root"."""
    return CertificateOptions(
        common_name="localhost",
        host="localhost",
        ca="root",
        expires=timedelta(hours=1),
    )
