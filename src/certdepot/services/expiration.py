"""
Per-certificate expiration checks.

These work against any depot: they read the certificate itself rather
than the TTL index, which only database-backed depots keep.
"""

from datetime import UTC, datetime, timedelta

from loguru import logger

from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import (
    Tag,
    crt_tag,
    csr_tag,
    priv_key_tag,
)
from certdepot.pki import Certificate


def delete_if_exists(depot: Depot, *tags: Tag) -> None:
    """Delete each tag that currently holds data."""
    for tag in tags:
        if depot.check(tag):
            depot.delete(tag)


def _get_certificate(depot: Depot, name: str) -> Certificate:
    return Certificate.from_pem(depot.get(crt_tag(name)))


def validity_bounds(depot: Depot, name: str) -> tuple[datetime, datetime]:
    """
    Get the validity window of the certificate stored under ``name``.

    Returns:
        (not_before, not_after) as UTC datetimes

    Raises:
        ArtifactNotFoundError: If no certificate is stored
    """
    crt = _get_certificate(depot, name)
    return crt.not_before, crt.not_after


def delete_on_expiration(depot: Depot, name: str, after: timedelta) -> bool:
    """
    Delete the certificate of ``name`` if it expires within ``after``.

    The key goes with it, and so does the certificate request unless the
    certificate is a CA.

    Returns:
        True if the certificate was deleted, False otherwise (including when
        no certificate exists)
    """
    if not depot.check_with_error(crt_tag(name)):
        return False

    crt = _get_certificate(depot, name)
    if crt.not_after >= datetime.now(UTC) + after:
        return False

    depot.delete(crt_tag(name))
    if crt.is_ca:
        delete_if_exists(depot, priv_key_tag(name))
    else:
        delete_if_exists(depot, csr_tag(name), priv_key_tag(name))

    logger.info(f"Deleted certificate {name} expiring at {crt.not_after}")
    return True
