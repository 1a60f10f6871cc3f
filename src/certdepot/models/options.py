"""
Depot configuration models.

These models configure depot backends; they are shared by the factory,
the backends and bootstrap.
"""

from datetime import timedelta

from pydantic import BaseModel, Field

from certdepot.exceptions import DepotValidationError

DEFAULT_TABLE_NAME = "certdepot-certificates"
DEFAULT_REGION = "us-east-1"


class DepotOptions(BaseModel):
    """
    Defaults applied by find/generate.

    Attributes:
        ca: Name of the CA whose certificate is bundled into credentials
            and which signs generated certificates.
        default_expiration: Lifetime of generated certificates when the
            caller's options do not set one.
    """

    ca: str = Field(default="")
    default_expiration: timedelta = Field(default=timedelta(0))


class DynamoDBOptions(BaseModel):
    """
    Configuration of the DynamoDB depot.

    Attributes:
        table_name: DynamoDB table holding one item per identity
        region: AWS region
        host: Endpoint override (DynamoDB Local, localstack)
        auto_create_table: Create the table if it does not exist
        depot_options: Defaults for find/generate
    """

    table_name: str = Field(default="")
    region: str = Field(default="")
    host: str | None = Field(default=None)
    auto_create_table: bool = Field(default=False)
    depot_options: DepotOptions = Field(default_factory=DepotOptions)

    def is_zero(self) -> bool:
        return self == DynamoDBOptions()

    def validate_options(self) -> None:
        """
        Fill defaults and check the options are usable.

        Raises:
            DepotValidationError: If the table name is invalid
        """
        if not self.table_name:
            self.table_name = DEFAULT_TABLE_NAME
        if not self.region:
            self.region = DEFAULT_REGION
        if len(self.table_name) < 3:
            raise DepotValidationError(
                f"table name '{self.table_name}' must be at least 3 characters"
            )
