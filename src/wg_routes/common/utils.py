"""Utility functions for wg-routes."""

import ipaddress
import re

from ..models import AddressFamily

# Linux IFNAMSIZ minus the trailing NUL
MAX_INTERFACE_NAME_LENGTH = 15

_INTERFACE_NAME_RE = re.compile(r"^[A-Za-z0-9_.=+-]+$")


def parse_input_list(value: str | None) -> list[str]:
    """Split a comma-delimited input into trimmed, non-empty items.

    Args:
        value: Raw input such as ``"a.example.com, b.example.com,"``

    Returns:
        List of items in input order
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def validate_interface_name(value: str) -> str:
    """Validate a Linux network interface name.

    Raises:
        ValueError: If the name is empty, too long or has invalid characters
    """
    value = value.strip()
    if not value:
        raise ValueError("Interface name cannot be empty")
    if len(value) > MAX_INTERFACE_NAME_LENGTH:
        raise ValueError(
            f"Interface name must be at most {MAX_INTERFACE_NAME_LENGTH} characters"
        )
    if value in (".", "..") or not _INTERFACE_NAME_RE.match(value):
        raise ValueError(f"Invalid interface name: {value}")
    return value


def address_family(ip: str) -> AddressFamily:
    """Return the address family of a literal IP address.

    Raises:
        ValueError: If ``ip`` is not a valid IPv4 or IPv6 address
    """
    parsed = ipaddress.ip_address(ip)
    return AddressFamily.V6 if parsed.version == 6 else AddressFamily.V4
