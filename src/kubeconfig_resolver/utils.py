"""Shared utility functions for timestamp handling."""

from __future__ import annotations

from datetime import UTC, datetime

# Layout used when writing provider expiry values back into a kubeconfig.
EXPIRY_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_expiry(ts_str: str | None) -> datetime | None:
    """Parse a stored token expiry to a timezone-aware UTC datetime.

    Accepts the ``YYYY-MM-DD HH:MM:SS`` layout (always UTC) as well as ISO 8601 /
    RFC 3339 strings. Naive values are assumed to be UTC.

    Returns None for empty/None input or unparseable strings, so the caller can
    decide how to treat an unknown expiry.
    """
    if not ts_str:
        return None
    value = ts_str.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        try:
            parsed = datetime.strptime(value, EXPIRY_FORMAT)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_expiry(expiry: datetime) -> str:
    """Format an expiry in the kubeconfig layout, converted to UTC."""
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=UTC)
    return expiry.astimezone(UTC).strftime(EXPIRY_FORMAT)
