"""Parsing and validation of subject alternative name values."""

import ipaddress
from urllib.parse import urlparse

from certdepot.exceptions import DepotValidationError


def parse_and_validate_ips(
    values: list[str],
) -> list[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    """
    Parse IP subject alternative names.

    Args:
        values: IP addresses as strings; blank entries are ignored

    Returns:
        Parsed addresses

    Raises:
        DepotValidationError: If any entry is not an IP address
    """
    ips = []
    for value in values:
        value = value.strip()
        if not value:
            continue
        try:
            ips.append(ipaddress.ip_address(value))
        except ValueError as e:
            raise DepotValidationError(f"invalid IP address '{value}'") from e
    return ips


def parse_and_validate_uris(values: list[str]) -> list[str]:
    """Validate URI subject alternative names (a scheme is required)."""
    uris = []
    for value in values:
        value = value.strip()
        if not value:
            continue
        parsed = urlparse(value)
        if not parsed.scheme:
            raise DepotValidationError(f"invalid URI '{value}': missing scheme")
        uris.append(value)
    return uris
