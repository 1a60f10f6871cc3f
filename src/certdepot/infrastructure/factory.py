"""
Infrastructure factory for depot backend selection.

Selects the depot implementation based on configuration:
- file: File-based storage in a local directory
- dynamodb: DynamoDB table (PynamoDB), supports expiration tracking

Usage:
    from certdepot.infrastructure import DepotFactory
    from certdepot.config import get_settings

    # Option 1: From settings
    settings = get_settings()
    factory = DepotFactory.from_settings(settings)

    # Option 2: Manual configuration
    factory = DepotFactory(provider="file", base_dir="/var/lib/certs")

    depot = factory.get_depot()
"""

from datetime import timedelta
from typing import TYPE_CHECKING, Literal

from loguru import logger

from certdepot.exceptions import DepotValidationError
from certdepot.infrastructure.repositories.depot import Depot
from certdepot.models import DepotOptions, DynamoDBOptions

if TYPE_CHECKING:
    from certdepot.config import Settings

DepotProvider = Literal["file", "dynamodb"]


class DepotFactory:
    """
    Factory for creating depot instances.

    Keeps callers independent of the storage backend.
    """

    def __init__(self, provider: DepotProvider | None = None, **config):
        """
        Initialize depot factory.

        Args:
            provider: Depot backend ("file", "dynamodb").
                     If None, uses "file" as default.
            **config: Backend-specific configuration options:
                     base_dir, dynamodb_table, aws_region, dynamodb_host,
                     auto_create_table, default_ca, default_expiration

        Example:
            factory = DepotFactory(
                provider="dynamodb",
                aws_region="us-west-2",
                dynamodb_table="certs",
            )
        """
        if provider is None:
            provider = "file"

        self.provider = provider
        self.config = config

        logger.info(f"Initialized DepotFactory with provider: {provider}")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DepotFactory":
        """
        Create factory from Settings object.

        Args:
            settings: Library settings from config.py

        Returns:
            DepotFactory configured from settings
        """
        config = {
            "base_dir": settings.file_depot_dir,
            "aws_region": settings.aws_region,
            "dynamodb_table": settings.dynamodb_table,
            "dynamodb_host": settings.dynamodb_host,
            "auto_create_table": settings.auto_create_table,
            "default_ca": settings.default_ca,
            "default_expiration": settings.default_expiration,
        }

        return cls(provider=settings.depot_provider, **config)

    def _depot_options(self) -> DepotOptions:
        return DepotOptions(
            ca=self.config.get("default_ca", ""),
            default_expiration=self.config.get("default_expiration", timedelta(0)),
        )

    def get_depot(self) -> Depot:
        """
        Get depot for configured provider.

        Returns:
            Depot implementation

        Raises:
            DepotValidationError: If provider is not supported
        """
        if self.provider == "file":
            from certdepot.infrastructure.implementations.local import FileDepot

            base_dir = self.config.get("base_dir", "./.certdepot")
            return FileDepot(base_dir=base_dir, options=self._depot_options())

        elif self.provider == "dynamodb":
            from certdepot.infrastructure.implementations.aws import DynamoDBDepot

            options = DynamoDBOptions(
                table_name=self.config.get("dynamodb_table", ""),
                region=self.config.get("aws_region", ""),
                host=self.config.get("dynamodb_host"),
                auto_create_table=self.config.get("auto_create_table", False),
                depot_options=self._depot_options(),
            )
            return DynamoDBDepot(options)

        else:
            raise DepotValidationError(f"Unsupported depot provider: {self.provider}")
