"""AWS infrastructure implementations package."""

from certdepot.infrastructure.implementations.aws.depot import (
    DepotRecordModel,
    DynamoDBDepot,
)

__all__ = [
    "DepotRecordModel",
    "DynamoDBDepot",
]
