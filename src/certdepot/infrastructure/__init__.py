"""
Infrastructure layer for depot storage.

This module provides the depot interface and its backends:
- file: One PEM file per artifact in a local directory
- dynamodb: One DynamoDB item per identity, with expiration tracking

Backends are selected via the factory pattern.
"""

from certdepot.infrastructure.factory import DepotFactory

__all__ = ["DepotFactory"]
