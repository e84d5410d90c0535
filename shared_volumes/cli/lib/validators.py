"""
Input validation functions.
"""

import re
from typing import Optional

_TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "n", "no", "off"}


def validate_name(name: str) -> None:
    """
    Validate a volume name.

    Args:
        name: Name to validate

    Raises:
        ValueError: If name is invalid
    """
    if not name:
        raise ValueError("Name cannot be empty")

    if len(name) > 64:
        raise ValueError("Name must be between 1 and 64 characters")

    # Allow alphanumeric, dots, underscores, hyphens
    if not re.match(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$", name):
        raise ValueError(
            "Name must start with alphanumeric and contain only alphanumeric, dots, underscores, or hyphens"
        )


def validate_identifier(value: str, kind: str = "identifier") -> None:
    """
    Validate a host or mount identifier used as a marker file name.

    Identifiers are opaque, but they end up as file names inside the
    volume's lock directory, so they cannot escape it.

    Args:
        value: Identifier to validate
        kind: Human readable kind used in error messages

    Raises:
        ValueError: If identifier is invalid
    """
    if not value:
        raise ValueError(f"{kind.capitalize()} cannot be empty")

    if value in (".", "..") or "/" in value or "\0" in value:
        raise ValueError(f"Invalid {kind} '{value}': must not be '.', '..' or contain '/' or NUL")


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """
    Parse a boolean option value.

    Args:
        value: Raw option value (e.g., "true", "0", "yes")
        default: Value returned for None or an empty string

    Returns:
        Parsed boolean

    Raises:
        ValueError: If value is not a recognised boolean
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value

    raw = str(value).strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")
