"""
Models package.

Contains pydantic models shared across depots and services.
"""

from certdepot.models.credentials import Credentials
from certdepot.models.options import DepotOptions, DynamoDBOptions

__all__ = [
    "Credentials",
    "DepotOptions",
    "DynamoDBOptions",
]
